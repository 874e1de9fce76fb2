"""Arranges already-retrieved documents into a single prompt context string."""

from search_backend.domain.entities import Document, MultiSourceResult

DOCUMENT_DELIMITER = "\n\n---\n\n"


def build_context(documents: list[Document], max_documents: int | None = None) -> str:
    """Concatenate documents in the given order under indexed headers.

    Only the document-count cap is applied; no token-aware truncation
    happens here.
    """
    if max_documents is not None:
        documents = documents[: max(max_documents, 0)]
    return DOCUMENT_DELIMITER.join(
        f"## Document {index}: {doc.title}\nURL: {doc.url}\n\n{doc.content}"
        for index, doc in enumerate(documents, start=1)
    )


def build_multi_source_context(results: list[MultiSourceResult]) -> str:
    """Same delimiter convention as build_context, with source/weight headers."""
    blocks = []
    for index, result in enumerate(results, start=1):
        header = [
            f"## Source {index}: {result.title}",
            f"Type: {result.source.value} | Weight: {result.weight:.2f}",
        ]
        if result.is_resolved:
            header[-1] += " | Status: resolved"
        timestamp = result.metadata.get("timestamp")
        if timestamp:
            header.append(f"Updated: {timestamp}")
        header.append(f"URL: {result.url}")
        blocks.append("\n".join(header) + f"\n\n{result.content}")
    return DOCUMENT_DELIMITER.join(blocks)


def format_conversation(turns: list[tuple[str, str]], *, max_answer_chars: int = 500) -> str:
    """Render prior (query, answer) pairs for inclusion in a follow-up prompt."""
    return "\n\n".join(
        f"User: {query}\nAssistant: {answer[:max_answer_chars]}" for query, answer in turns
    )
