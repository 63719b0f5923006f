"""
Inference engine adapters for yolo_postproc.

Backends live in their own subpackage so decoding, NMS and preprocessing can
be used without an inference runtime installed.
"""

from __future__ import annotations

__all__ = []
