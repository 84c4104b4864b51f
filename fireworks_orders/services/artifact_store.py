"""
Artifact Store - rendered PDFs on the local file system
"""
import os
import re
from pathlib import Path
from typing import List, Optional

from fireworks_orders.config import settings
from fireworks_orders.logger import get_logger

logger = get_logger(__name__)


def safe_party_name(name: Optional[str]) -> str:
    """'Ravi Kumar & Sons' -> 'ravi_kumar_sons'"""
    cleaned = re.sub(r"[^a-z0-9]+", "_", (name or "unknown").lower()).strip("_")
    return cleaned or "unknown"


def download_name(party_name: Optional[str], reference: str, document_type: str) -> str:
    return f"{safe_party_name(party_name)}-{reference}-{document_type}.pdf"


def artifact_name(party_name: Optional[str], reference: str, document_type: str, generation: int) -> str:
    """Deterministic storage name; each generation gets its own file"""
    return f"{safe_party_name(party_name)}-{reference}-{document_type}-v{generation}.pdf"


class ArtifactStore:
    """Stores artifacts under one directory; references are bare file names"""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.ARTIFACT_DIR)

    def _path(self, ref: str) -> Path:
        # References are names produced by artifact_name(); never paths
        return self.base_dir / os.path.basename(ref)

    def write(self, ref: str, content: bytes) -> str:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(ref)
        tmp = path.with_suffix(".tmp")
        tmp.write_bytes(content)
        os.replace(tmp, path)
        return ref

    def read(self, ref: Optional[str]) -> Optional[bytes]:
        """Artifact bytes, or None when the file is gone"""
        if not ref:
            return None
        path = self._path(ref)
        if not path.is_file():
            return None
        return path.read_bytes()

    def exists(self, ref: Optional[str]) -> bool:
        return bool(ref) and self._path(ref).is_file()

    def delete(self, ref: Optional[str]) -> bool:
        """Best effort; failures are logged, never raised"""
        if not ref:
            return False
        try:
            self._path(ref).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to delete artifact {ref}: {e}")
            return False

    def delete_all(self, reference: str, document_type: str) -> List[str]:
        """Remove every stored generation of one order's document"""
        if not self.base_dir.is_dir():
            return []
        removed = []
        suffix = f"-{reference}-{document_type}-v"
        for path in self.base_dir.glob(f"*{suffix}*.pdf"):
            # Party names never contain '-', so the rest must start with the reference
            if not path.name.split("-", 1)[1].startswith(suffix[1:]):
                continue
            if self.delete(path.name):
                removed.append(path.name)
        return removed
