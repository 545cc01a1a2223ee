import shutil
import uuid
from pathlib import Path
from typing import BinaryIO, Dict, Optional

import settings

PUBLIC_PREFIX = "/uploads"


def save_upload(fileobj: BinaryIO, filename: Optional[str], kind: str) -> Dict[str, str]:
    """Write an uploaded file under UPLOAD_DIR/<kind>/ and describe it as {name, path}."""
    directory = Path(settings.UPLOAD_DIR) / kind
    directory.mkdir(parents=True, exist_ok=True)
    original = Path(filename or "upload").name
    stored = f"{uuid.uuid4().hex}{Path(original).suffix}"
    with open(directory / stored, "wb") as out:
        shutil.copyfileobj(fileobj, out)
    return {"name": original, "path": f"{PUBLIC_PREFIX}/{kind}/{stored}"}
