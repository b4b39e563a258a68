from .tokens import compress_for_url, decompress_from_url, is_compressed_url_too_long, share_url

__all__ = [
    "compress_for_url",
    "decompress_from_url",
    "is_compressed_url_too_long",
    "share_url",
]
