"""Hash calculation for disc image tracks and cue sheets."""

import zlib
import hashlib
from pathlib import Path

SUPPORTED_ALGORITHMS = ('crc32', 'md5', 'sha1')

CHUNK_SIZE = 8 * 1024 * 1024


def calculate_hash(file_path: Path, algorithm: str = 'sha1') -> str:
    """
    Calculate hash for a file using specified algorithm.

    Args:
        file_path: Path to file to hash
        algorithm: Hash algorithm ('crc32', 'md5', 'sha1')

    Returns:
        Lowercase hex hash string (DAT catalogs key on lowercase SHA1)

    Raises:
        OSError: If file cannot be read
        ValueError: If algorithm is not supported
    """
    if algorithm not in SUPPORTED_ALGORITHMS:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    if algorithm == 'crc32':
        crc = 0
        with open(file_path, 'rb') as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b''):
                crc = zlib.crc32(chunk, crc)
        return f"{crc & 0xFFFFFFFF:08x}"

    hasher = hashlib.md5() if algorithm == 'md5' else hashlib.sha1()
    with open(file_path, 'rb') as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b''):
            hasher.update(chunk)
    return hasher.hexdigest()


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Example:
        >>> format_file_size(1536)
        '1.5 KB'
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"
