import os
import shutil
import logging
from typing import BinaryIO

from catalog_import.core.config import settings

logger = logging.getLogger(__name__)


def get_storage_root() -> str:
    return settings.LOCAL_STORAGE_PATH


def resolve_path(storage_key: str) -> str:
    root = os.path.abspath(get_storage_root())
    path = os.path.abspath(os.path.join(root, storage_key))
    if os.path.commonpath([root, path]) != root:
        raise ValueError(f"Storage key escapes storage root: {storage_key}")
    return path


def upload_file(file_obj: BinaryIO, storage_key: str) -> str:
    """
    Copies a file-like object under LOCAL_STORAGE_PATH and returns the
    absolute path written.
    """
    path = resolve_path(storage_key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    logger.info("Storing upload at %s", path)
    file_obj.seek(0)
    with open(path, "wb") as out:
        shutil.copyfileobj(file_obj, out, length=1024 * 1024)
    return path


def delete_file(path: str) -> None:
    try:
        os.remove(path)
        logger.debug("Deleted stored file: %s", path)
    except OSError as e:
        logger.warning("Could not delete stored file %s: %s", path, e)
