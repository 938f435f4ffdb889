"""Concatenation recipe for multi-clip jobs.

The recipe is an ffmpeg concat-demuxer list with instructions in comment
lines. It is handed to the user; nothing here runs ffmpeg.
"""

from typing import Iterable, Optional

CONCAT_COMMAND = "ffmpeg -f concat -safe 0 -i concat.txt -c copy output.mp4"


def clip_filename(scene_index: int) -> str:
    return f"clip_{scene_index}.mp4"


def build_concat_script(scene_indexes: Iterable[int]) -> Optional[str]:
    """Build the concat list for the given scene indexes.

    Entries are emitted in ascending scene order regardless of input order.
    Returns None for fewer than two clips.
    """
    ordered = sorted(scene_indexes)
    if len(ordered) < 2:
        return None

    lines = [
        "# Video concatenation recipe",
        "# 1. Download each clip and rename it as listed below",
        "# 2. Save this file as concat.txt in the same folder",
        f"# 3. Run: {CONCAT_COMMAND}",
        "",
    ]
    lines.extend(f"file '{clip_filename(i)}'" for i in ordered)
    return "\n".join(lines) + "\n"
