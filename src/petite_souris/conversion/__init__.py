"""
Domain layer for document conversion.
Provides the remote converter interface, the CloudConvert adapter, and the
service that validates uploads before delegating, so front-ends (HTTP or
others) can use the same core logic.
"""

from .interfaces import ConvertedFile, RemoteConverter
from .service import ConversionService, DEFAULT_MAX_UPLOAD_BYTES
