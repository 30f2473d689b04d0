"""Stable document identifiers and display names."""

import os

DOCUMENT_ID_PREFIX = "doc_"


def make_stable_document_id(file_path: str) -> str:
    """Build the resource id of a source file from its name.

    The id only depends on the file name, so re-ingesting the same file always
    maps to the same resource in the relation store and the vector index.

    Args:
        file_path (str): Path of the source file.

    Returns:
        str: e.g. "doc_sherlock-holmes" for ".../sherlock-holmes.txt".
    """
    stem, _ = os.path.splitext(os.path.basename(file_path))
    return f"{DOCUMENT_ID_PREFIX}{stem}"


def get_document_display_name(resource_id: str) -> str:
    """Derive a human-readable name from a resource id.

    Args:
        resource_id (str): e.g. "doc_federalist-papers".

    Returns:
        str: e.g. "Federalist Papers".
    """
    name = resource_id[len(DOCUMENT_ID_PREFIX):] if resource_id.startswith(DOCUMENT_ID_PREFIX) else resource_id
    words = [word for word in name.replace("_", "-").split("-") if word]
    return " ".join(word[0].upper() + word[1:] for word in words)
