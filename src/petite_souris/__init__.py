"""
Petite Souris document conversion package.

This package provides a FastAPI gateway exposing `POST /convert`, which hands
uploaded documents to CloudConvert, and a Streamlit front-end that queues
uploads and submits them one at a time.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
