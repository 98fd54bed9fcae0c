from typing import Optional, List, Tuple

from yggstream.core.models import FileInfo

# ===========================
# Parsing Constants
# ===========================
UNKNOWN = "Unknown"

RESOLUTION_TAGS: List[Tuple[str, Tuple[str, ...]]] = [
    ("4K", ("2160P", "4K", "UHD")),
    ("1080p", ("1080P", "1080I")),
    ("720p", ("720P",)),
    ("480p", ("480P", "576P")),
]

CODEC_TAGS: List[Tuple[str, Tuple[str, ...]]] = [
    ("H.265", ("X265", "H265", "H.265", "HEVC")),
    ("H.264", ("X264", "H264", "H.264", "AVC")),
    ("AV1", ("AV1",)),
    ("XviD", ("XVID",)),
]

# Order matters: WEB-DL is checked after WEBRIP so "WEBRIP" never matches "WEB".
SOURCE_TAGS: List[Tuple[str, Tuple[str, ...]]] = [
    ("REMUX", ("REMUX",)),
    ("BluRay", ("BLURAY", "BLU-RAY", "BDRIP", "BRRIP")),
    ("HDLight", ("HDLIGHT", "MHD")),
    ("WEBRip", ("WEBRIP", "WEB-RIP")),
    ("WEB-DL", ("WEB-DL", "WEBDL", "WEB")),
    ("HDTV", ("HDTV",)),
    ("DVDRip", ("DVDRIP", "DVD-RIP")),
]

SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]


# ===========================
# Tag Matching
# ===========================
def _match_tag(name_upper: str, tags: List[Tuple[str, Tuple[str, ...]]]) -> str:
    for label, needles in tags:
        if any(needle in name_upper for needle in needles):
            return label
    return UNKNOWN


# ===========================
# File Name Parsing
# ===========================
def parse_file_name(name: Optional[str]) -> FileInfo:
    if not name:
        return FileInfo(UNKNOWN, UNKNOWN, UNKNOWN)

    name_upper = name.upper()

    return FileInfo(
        resolution=_match_tag(name_upper, RESOLUTION_TAGS),
        codec=_match_tag(name_upper, CODEC_TAGS),
        source=_match_tag(name_upper, SOURCE_TAGS),
    )


# ===========================
# Size Formatting
# ===========================
def format_size(size: Optional[int]) -> str:
    if not size or size < 0:
        return UNKNOWN

    value = float(size)
    for unit in SIZE_UNITS[:-1]:
        if value < 1024:
            return f"{value:.2f} {unit}"
        value /= 1024

    return f"{value:.2f} {SIZE_UNITS[-1]}"
