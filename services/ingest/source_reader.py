"""Reads plain-text source documents from a directory."""

import logging
import os

from shared.helper.document_naming import get_document_display_name, make_stable_document_id
from shared.models.document import SourceDocument

SUPPORTED_EXTENSIONS = (".txt", ".md")


def read_source_documents(source_dir: str, logger: logging.Logger) -> list[SourceDocument]:
    """Read every supported file directly inside `source_dir`.

    Args:
        source_dir (str): Directory holding the documents.
        logger (logging.Logger): Logger for skipped files.

    Returns:
        list[SourceDocument]: Documents sorted by file name.

    Raises:
        FileNotFoundError: If the directory does not exist.
    """
    if not os.path.isdir(source_dir):
        raise FileNotFoundError(f"Source directory '{source_dir}' does not exist.")

    documents: list[SourceDocument] = []
    seen_ids: dict[str, str] = {}
    for file_name in sorted(os.listdir(source_dir)):
        path = os.path.join(source_dir, file_name)
        if not os.path.isfile(path) or not file_name.lower().endswith(SUPPORTED_EXTENSIONS):
            logger.debug("Ignoring '%s': not a supported document.", file_name)
            continue

        resource_id = make_stable_document_id(path)
        if resource_id in seen_ids:
            logger.warning(
                "Skipping '%s': resource id '%s' already taken by '%s'.",
                file_name, resource_id, seen_ids[resource_id],
            )
            continue
        seen_ids[resource_id] = file_name

        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read '%s': %s. Skipping.", path, e)
            continue

        documents.append(SourceDocument(
            resource_id=resource_id,
            name=get_document_display_name(resource_id),
            source=path,
            content=content,
        ))
    return documents
