"""Decoding of provider prediction output into plain text.

Whisper deployments do not agree on an output shape. Output is first
classified into one of a fixed set of shapes, then each shape has exactly
one rule for producing text. Unrecognized shapes are serialized whole so a
succeeded job always yields something the caller can use.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class OutputShape(str, Enum):
    EMPTY = "empty"
    PLAIN_TEXT = "plain_text"
    TRANSCRIPTION_FIELD = "transcription_field"
    TEXT_FIELD = "text_field"
    TEXT_CHUNKS = "text_chunks"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class DecodedOutput:
    shape: OutputShape
    text: str


def classify_output(output: Any) -> OutputShape:
    if output is None:
        return OutputShape.EMPTY
    if isinstance(output, str):
        return OutputShape.PLAIN_TEXT
    if isinstance(output, dict):
        if isinstance(output.get("transcription"), str):
            return OutputShape.TRANSCRIPTION_FIELD
        if isinstance(output.get("text"), str):
            return OutputShape.TEXT_FIELD
    if isinstance(output, list) and output and all(isinstance(i, str) for i in output):
        return OutputShape.TEXT_CHUNKS
    return OutputShape.OPAQUE


def decode_output(output: Any) -> DecodedOutput:
    """Turn a succeeded job's output into text.

    Args:
        output: The ``output`` field of a succeeded prediction.

    Returns:
        DecodedOutput naming the shape that was recognized and the text.
    """
    shape = classify_output(output)
    if shape is OutputShape.EMPTY:
        text = ""
    elif shape is OutputShape.PLAIN_TEXT:
        text = output
    elif shape is OutputShape.TRANSCRIPTION_FIELD:
        text = output["transcription"]
    elif shape is OutputShape.TEXT_FIELD:
        text = output["text"]
    elif shape is OutputShape.TEXT_CHUNKS:
        text = "".join(output)
    else:
        text = json.dumps(output, default=str)
    return DecodedOutput(shape=shape, text=text)
