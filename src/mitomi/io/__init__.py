"""MITOMI IO — TIFF channels, orientation, run files and table export."""

from mitomi.io.export import write_table
from mitomi.io.orientation import ORIENTATION_OPS, flip_lr, flip_ud, orient, rotate_ccw, rotate_cw
from mitomi.io.run_file import RunSpec, load_run_file, parse_run
from mitomi.io.tiff import load_image_set, read_frame, read_stack, read_tiff

__all__ = [
    "ORIENTATION_OPS",
    "RunSpec",
    "flip_lr",
    "flip_ud",
    "load_image_set",
    "load_run_file",
    "orient",
    "parse_run",
    "read_frame",
    "read_stack",
    "read_tiff",
    "rotate_ccw",
    "rotate_cw",
    "write_table",
]
