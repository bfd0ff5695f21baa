# artifacts.py
# Artifact persistence under <artifacts_root>/<plan_id>/<filename>.
#
# The content hash is always taken from the bytes on disk after the write,
# never from the in-memory string.

from pathlib import Path

from plan_sandbox.canonical import sha256_file
from plan_sandbox.models import ArtifactRecord


class ArtifactWriteError(Exception):
    """Raised when an artifact cannot be written or re-read."""


class ArtifactWriter:
    """Writes one plan's artifacts. Re-writing a filename overwrites it."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def plan_dir(self, plan_id: str) -> Path:
        return self._root / plan_id

    def write(self, plan_id: str, filename: str, content: str) -> ArtifactRecord:
        out_dir = self.plan_dir(plan_id)
        out_path = out_dir / filename
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            # newline="" keeps content verbatim on every platform.
            with open(out_path, "w", encoding="utf-8", newline="") as fh:
                fh.write(content)
            content_hash = sha256_file(out_path)
        except OSError as exc:
            raise ArtifactWriteError(f"Could not write artifact {out_path}: {exc}") from exc

        return ArtifactRecord(
            plan_id=plan_id,
            filename=filename,
            path=str(out_path),
            content_hash=content_hash,
        )
