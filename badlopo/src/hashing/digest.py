import base64
import hashlib
from pathlib import Path
from typing import Tuple

ALGORITHMS = ("md5", "sha1", "sha224", "sha256", "sha384", "sha512")


def parse_algorithm(value: str) -> str:
    """Case-insensitive algorithm name check ('SHA256' -> 'sha256')."""
    name = str(value).strip().lower()
    if name not in ALGORITHMS:
        raise ValueError(f"invalid algorithm '{value}' (choose from {', '.join(ALGORITHMS)})")
    return name


def digest_bytes(data: bytes, algorithm: str) -> bytes:
    h = hashlib.new(algorithm)
    h.update(data)
    return h.digest()


def digest_file(path: Path, algorithm: str, chunk_size: int = 1_048_576) -> bytes:
    h = hashlib.new(algorithm)
    with Path(path).open("rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            h.update(chunk)
    return h.digest()


def encode_digest(digest: bytes) -> Tuple[str, str]:
    """(hex, base64) renderings of a raw digest."""
    return digest.hex(), base64.b64encode(digest).decode("ascii")


def hash_source(source: str, algorithm: str, raw: bool = False) -> Tuple[str, str]:
    """
    Hash `source` as a file path (default) or as the literal string (raw=True).
    Raises OSError when the file cannot be read.
    """
    algorithm = parse_algorithm(algorithm)
    if raw:
        digest = digest_bytes(source.encode("utf-8"), algorithm)
    else:
        digest = digest_file(Path(source), algorithm)
    return encode_digest(digest)
