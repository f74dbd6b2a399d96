from __future__ import annotations

import os


def upload_name(file_obj) -> str:
    """Base file name of an uploaded file or file path."""
    if file_obj is None:
        return ''
    path = file_obj.name if hasattr(file_obj, 'name') else file_obj
    return os.path.basename(str(path))


def read_bytes_content(file_obj) -> bytes:
    """Read raw content from an uploaded file or file path."""
    if file_obj is None:
        raise ValueError("No file uploaded.")

    if hasattr(file_obj, 'read'):
        if hasattr(file_obj, 'seek'):
            file_obj.seek(0)
        content = file_obj.read()
        if isinstance(content, str):
            content = content.encode('utf-8')
        return content

    path = file_obj.name if hasattr(file_obj, 'name') else file_obj
    with open(path, 'rb') as f:
        return f.read()


def read_text_content(file_obj) -> str:
    return read_bytes_content(file_obj).decode('utf-8-sig')
