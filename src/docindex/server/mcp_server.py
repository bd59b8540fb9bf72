"""FastMCP server exposing the document index."""

from mcp.server.fastmcp import FastMCP

from docindex.app import Services
from docindex.cli import format_size, snippet


def create_mcp_server(services: Services) -> FastMCP:
    """Create an MCP server over an initialized index.

    The server only reads: indexing stays a CLI operation.

    Args:
        services: Wired components from ``build_services``

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(name="docindex")
    store = services.store

    @mcp.tool()
    def ls(path: str = "") -> str:
        """List indexed files.

        Args:
            path: Optional path prefix to filter results

        Returns:
            One line per file with size and chunk count
        """
        records = store.list_files(path)
        if not records:
            return f"No files found matching '{path}'"

        lines = []
        for record in records:
            size_str = format_size(record.size)
            chunks = store.count_embeddings(record.id)
            empty = "" if record.extracted_text.strip() else "[no text]"
            lines.append(f"{record.path:<60} {size_str:>10} {chunks:>5} chunks {empty}")
        return "\n".join(lines)

    @mcp.tool()
    def read(path: str) -> str:
        """Read the text extracted from an indexed file.

        Args:
            path: Full path to the file (as shown in ls output)
        """
        record = store.get_file_by_path(path)
        if record is None:
            return f"Error: File not found: {path}"
        if not record.extracted_text.strip():
            return (
                f"[No text extracted]\n"
                f"  Path: {record.path}\n"
                f"  Size: {record.size} bytes\n"
                f"  Type: {record.file_type}"
            )
        return record.extracted_text

    @mcp.tool()
    def recall(query: str, limit: int = 10) -> str:
        """Semantic search across the indexed documents.

        Finds content by meaning rather than keyword: "quarterly revenue"
        can match a spreadsheet that never uses the word "quarterly".

        Args:
            query: Natural language description of what you're looking for
            limit: Maximum number of results to return (default: 10)

        Returns:
            Ranked list of matching chunks with similarity scores
        """
        results = services.search.search(query, k=limit)
        if not results:
            return f"No results found for: {query}"

        lines = []
        for i, r in enumerate(results, 1):
            lines.append(f"{i}. [{r.score:.3f}] {r.file.path}")
            lines.append(f"   {snippet(r.chunk_text)}")
            lines.append("")
        return "\n".join(lines)

    return mcp
