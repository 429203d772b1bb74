"""Document input -- load documents and resolve ``$ref`` pointers.

Typical usage::

    from specway.parser import load_document, resolve

    raw = load_document("petstore.yaml")
    resolved = resolve(raw, "petstore.yaml")

Sub-modules:

* :mod:`~specway.parser.loader` -- I/O layer (URL, file, stdin) plus format
  detection and Swagger version validation.
* :mod:`~specway.parser.resolver` -- JSON Reference resolution producing
  the local and fully resolved trees and the reference inventory.
* :mod:`~specway.parser.pointer` -- JSON Pointer helpers.
"""

from specway.parser.loader import load_document, validate_swagger_version
from specway.parser.resolver import ResolvedDocument, resolve

__all__ = ["load_document", "validate_swagger_version", "resolve", "ResolvedDocument"]
