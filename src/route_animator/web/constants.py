ALLOWED_EXTENSIONS = (
    ".png",
    ".jpg",
    ".jpeg",
    ".bmp",
    ".gif",
    ".tiff",
    ".webp",
)

# Previews are rendered at most this wide, keeping the export aspect ratio.
PREVIEW_WIDTH = 960
CHUNK_SIZE = 1 << 20  # 1 MiB chunks while streaming uploads to disk.


__all__ = [
    "ALLOWED_EXTENSIONS",
    "CHUNK_SIZE",
    "PREVIEW_WIDTH",
]
