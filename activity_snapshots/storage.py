import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)


def write_json_file(file_path: str | os.PathLike[str], data: Any) -> Path:
    """Atomically write `data` as indented JSON, creating parent directories.

    The payload is serialized before anything touches the target, so a
    failure leaves the previously published file in place.
    """

    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(data, indent=2, ensure_ascii=False)

    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise

    logger.info("Wrote %s", path)
    return path


def read_json_file(file_path: str | os.PathLike[str]) -> Any:
    """Read a previously published JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """

    with open(file_path, "r", encoding="utf-8") as handle:
        return json.load(handle)
