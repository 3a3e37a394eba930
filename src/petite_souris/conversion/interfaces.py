from dataclasses import dataclass
from typing import Protocol


class RemoteConverter(Protocol):
    def convert(self, data: bytes, input_format: str, output_format: str) -> bytes:
        """Convert `data` from `input_format` to `output_format` on a remote service.

        This is a blocking call; callers should offload to threads if needed.
        """


@dataclass(frozen=True)
class ConvertedFile:
    content: bytes
    filename: str
    content_type: str
