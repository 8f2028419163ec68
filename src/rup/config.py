from pathlib import Path

from pydantic import BaseModel, ConfigDict, DirectoryPath, Field, field_validator

from .request import MAX_LINE
from .response import NOT_FOUND_PAGE

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_TIMEOUT = 5.0


class ServerConfig(BaseModel):
    """Settings fixed at startup and shared read-only by every connection."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    host: str = DEFAULT_HOST
    port: int = Field(DEFAULT_PORT, ge=0, le=65535)
    root: DirectoryPath = Path(".")
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    not_found_page: str = NOT_FOUND_PAGE
    max_line: int = Field(MAX_LINE, gt=0)

    @field_validator("root")
    @classmethod
    def absolute_root(cls, v: Path) -> Path:
        return v.resolve()

    @property
    def root_dir(self) -> str:
        return str(self.root)
