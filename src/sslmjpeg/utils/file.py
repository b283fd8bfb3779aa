"""Writing grabbed frames to disk."""

from pathlib import Path

from sslmjpeg.models import Frame


def save_frame(frame: Frame, output_dir: Path, prefix: str = "", width: int = 4) -> Path:
    """Write a frame's JPEG bytes to ``output_dir`` as ``<prefix><index>.jpg``.

    The directory is created if needed and the index is zero-padded to
    ``width`` digits. Files are only written once the frame is complete in
    memory.

    Returns:
        Path of the written file
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    dest_path = output_dir / f"{prefix}{frame.index:0{width}d}.jpg"
    dest_path.write_bytes(frame.data)
    return dest_path
