# config.py
# Runner configuration. Environment (and an optional .env file) supplies
# defaults; CLI flags override them.

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: str | None) -> bool:
    return value is not None and value.strip().lower() in _TRUTHY


class RunnerConfig(BaseModel):
    home: Path = Field(default_factory=Path.cwd, description="Workspace root.")
    artifacts_dir: str = Field(default="artifacts", description="Artifact root, relative to home.")
    audit_log: str = Field(default="logs/audit.log", description="Audit log path, relative to home.")
    strict_integrity: bool = Field(default=False, description="Fail the run on missing artifacts.")

    @property
    def artifacts_root(self) -> Path:
        return self.home / self.artifacts_dir

    @property
    def audit_log_path(self) -> Path:
        return self.home / self.audit_log

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "RunnerConfig":
        if dotenv:
            load_dotenv()
        values: dict = {}
        if home := os.getenv("PLAN_SANDBOX_HOME"):
            values["home"] = Path(home)
        if artifacts_dir := os.getenv("PLAN_SANDBOX_ARTIFACTS_DIR"):
            values["artifacts_dir"] = artifacts_dir
        if audit_log := os.getenv("PLAN_SANDBOX_AUDIT_LOG"):
            values["audit_log"] = audit_log
        values["strict_integrity"] = _flag(os.getenv("PLAN_SANDBOX_STRICT_INTEGRITY"))
        return cls(**values)
