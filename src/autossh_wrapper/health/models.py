from pydantic import BaseModel, ConfigDict, Field

PING_PATH = "/ping"
PONG_BODY = "pong\n"


class ProbeOutcome(BaseModel):
    """Result of a single liveness probe"""

    model_config = ConfigDict(frozen=True)

    ok: bool
    error: str | None = None
    status_code: int | None = None
    body: str | None = None
    elapsed: float = Field(default=0.0, ge=0)

    @classmethod
    def success(cls, body: str, status_code: int, elapsed: float) -> "ProbeOutcome":
        return cls(ok=True, body=body, status_code=status_code, elapsed=elapsed)

    @classmethod
    def failure(
        cls, error: str, elapsed: float = 0.0, status_code: int | None = None
    ) -> "ProbeOutcome":
        return cls(ok=False, error=error, status_code=status_code, elapsed=elapsed)

    def __bool__(self) -> bool:
        return self.ok
