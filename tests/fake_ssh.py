"""Stand-in for ssh used by the integration tests.

Binds the -L socket and relays every connection straight to the -R
target, as if the remote side looped the forward back. With --hang it
accepts connections but never relays them.
"""

import argparse
import socket
import sys
import threading


def parse_args(argv):
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("-L", dest="local_forward", required=True)
    parser.add_argument("-R", dest="remote_forward", required=True)
    parser.add_argument("--hang", action="store_true")
    args, _ = parser.parse_known_args(argv)
    return args


def pipe(src, dst):
    try:
        while True:
            data = src.recv(65536)
            if not data:
                break
            dst.sendall(data)
    except OSError:
        pass
    finally:
        try:
            dst.shutdown(socket.SHUT_WR)
        except OSError:
            pass


def relay(conn, target):
    upstream = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        upstream.connect(target)
    except OSError:
        conn.close()
        upstream.close()
        return
    threads = [
        threading.Thread(target=pipe, args=(conn, upstream), daemon=True),
        threading.Thread(target=pipe, args=(upstream, conn), daemon=True),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    conn.close()
    upstream.close()


def main(argv):
    args = parse_args(argv)
    send_path, _ = args.local_forward.split(":", 1)
    _, listen_path = args.remote_forward.split(":", 1)

    server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    server.bind(send_path)
    server.listen(16)

    held = []
    while True:
        conn, _ = server.accept()
        if args.hang:
            held.append(conn)
            continue
        threading.Thread(target=relay, args=(conn, listen_path), daemon=True).start()


if __name__ == "__main__":
    main(sys.argv[1:])
