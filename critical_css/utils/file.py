"""File utility for critical CSS extraction."""

import os
import logging
from typing import Optional

import aiofiles
import chardet

from .common import ensure_directory
from .error import FileOperationError

logger = logging.getLogger(__name__)

def detect_encoding(raw_data: bytes) -> str:
    """Detect the encoding of raw file content.

    Args:
        raw_data: File content

    Returns:
        Encoding name, utf-8 if detection is inconclusive
    """
    result = chardet.detect(raw_data)
    return result['encoding'] or 'utf-8'

def decode_content(raw_data: bytes, encoding: Optional[str] = None, source: str = 'file') -> str:
    """Decode file content, guessing the encoding if none is given.

    UTF-8 is tried first; other encodings are detected with chardet.

    Raises:
        FileOperationError: If the content cannot be decoded
    """
    if encoding is None:
        try:
            return raw_data.decode('utf-8')
        except UnicodeDecodeError:
            encoding = detect_encoding(raw_data)
            logger.debug(f"{source} is not utf-8, decoding as {encoding}")
    try:
        return raw_data.decode(encoding)
    except (LookupError, UnicodeDecodeError) as e:
        raise FileOperationError(f"Failed to decode {source} as {encoding}: {e}") from e

async def safe_write_file(file_path: str, content: str, encoding: str = 'utf-8') -> bool:
    """Safely write content to a file.

    Args:
        file_path: Path to the file
        content: Content to write
        encoding: File encoding

    Returns:
        True if successful

    Raises:
        FileOperationError: If file write fails
    """
    try:
        ensure_directory(os.path.dirname(file_path))
        async with aiofiles.open(file_path, 'w', encoding=encoding) as f:
            await f.write(content)
        return True
    except FileOperationError:
        raise
    except Exception as e:
        raise FileOperationError(f"Failed to write file {file_path}: {e}") from e

async def safe_read_file(file_path: str, encoding: Optional[str] = None) -> str:
    """Safely read text from a file.

    Args:
        file_path: Path to the file
        encoding: File encoding, detected if omitted

    Returns:
        File content

    Raises:
        FileOperationError: If file read fails
    """
    try:
        async with aiofiles.open(file_path, 'rb') as f:
            raw_data = await f.read()
    except Exception as e:
        raise FileOperationError(f"Failed to read file {file_path}: {e}") from e
    return decode_content(raw_data, encoding, file_path)

# Exported functions
__all__ = ['detect_encoding', 'decode_content', 'safe_write_file', 'safe_read_file']
