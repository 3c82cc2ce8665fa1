"""Codelens rich error messages.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from codelens.cli.errors import err_no_api_key, err_no_db
    console.print(err_no_api_key("openai"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_map = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "cohere": "COHERE_API_KEY",
        "gemini": "GEMINI_API_KEY",
        "mistral": "MISTRAL_API_KEY",
        "azure": "AZURE_API_KEY",
    }
    env_var = env_map.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=sk-..."
    )


def err_no_db(db_path: str = ".codelens.db") -> str:
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  codelens init"
    )


def err_project_not_found(project_id: str) -> str:
    return (
        f"[red]Error:[/] Project '{project_id}' not found.\n"
        "  Run:  codelens projects  to list stored projects."
    )


def err_no_files(directory: str) -> str:
    """Import found nothing readable."""
    return (
        f"[red]Error:[/] No importable files under '{directory}'.\n"
        "  Binary files, dependency folders and files over the size limit are skipped."
    )


def err_too_large(detail: str) -> str:
    return (
        f"[red]Error:[/] {detail}\n"
        "  Tip:  raise workspace.max_project_size in codelens.yaml"
    )


def err_config(detail: str) -> str:
    return f"[red]Error:[/] Invalid configuration.\n  {detail}"


def err_not_indexed(project_id: str) -> str:
    """Answer came back without any grounding context."""
    return (
        "[yellow]⚠[/] No indexed code matched the question.\n"
        f"  Run:  codelens index {project_id}  if the project has never been indexed."
    )


def err_no_block(index: int, available: int) -> str:
    if available == 0:
        return "[yellow]No code blocks in the last answer.[/]"
    return f"[red]Error:[/] No code block #{index}. The last answer has {available}."
