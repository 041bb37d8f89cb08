"""
Best-effort MIME type of a path, for picking a handler to open it with.
"""
import mimetypes
import os
import stat
from pathlib import Path
from typing import Union

OCTET_STREAM = "application/octet-stream"
DIRECTORY = "inode/directory"
SYMLINK = "inode/symlink"
ZERO_SIZE = "application/x-zerosize"
EXECUTABLE = "application/x-executable"


def guess_mime_type(path: Union[str, Path]) -> str:
    """
    Guess the MIME type of ``path``.

    Order: directory, dangling symlink, empty file, file-name extension,
    extension-less executable, then application/octet-stream. A path that
    does not exist is judged on its name alone.
    """
    path = Path(path)

    try:
        st = os.stat(path)
    except OSError:
        st = None
        if os.path.islink(path):
            return SYMLINK

    if st is not None:
        if stat.S_ISDIR(st.st_mode):
            return DIRECTORY
        if stat.S_ISREG(st.st_mode) and st.st_size == 0:
            return ZERO_SIZE

    guessed, _encoding = mimetypes.guess_type(path.name, strict=False)
    if guessed and guessed != OCTET_STREAM:
        return guessed

    if st is not None and st.st_mode & 0o111 and not path.suffix:
        return EXECUTABLE

    return OCTET_STREAM
