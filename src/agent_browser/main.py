"""
Agent Browser - CLI Entry Point.

Configuration Priority:
    1. CLI arguments (--cdp, --provider, etc.)
    2. Environment variables (AGENT_BROWSER__BROWSER__HEADLESS, etc.)
    3. Config file (agent-browser.yaml)

Usage:
    agent-browser tabs --cdp 9222
    agent-browser tabs --auto-connect
    agent-browser record https://example.com demo.webm --seconds 10
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from agent_browser.config import get_settings
from agent_browser.exceptions import AgentBrowserError
from agent_browser.session.connection import LaunchOptions
from agent_browser.session.manager import BrowserManager
from agent_browser.utils.logging import setup_logging

# Create the CLI app
app = typer.Typer(
    name="agent-browser",
    help="Browser session manager for automation agents",
    add_completion=False,
)

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging_settings = get_settings().logging
    setup_logging(
        level="DEBUG" if verbose else logging_settings.level,
        log_file=logging_settings.file,
        json_format=logging_settings.json_format,
    )


@app.command()
def tabs(
    cdp: Optional[str] = typer.Option(None, "--cdp", help="CDP port or WebSocket/HTTP URL"),
    auto_connect: bool = typer.Option(False, "--auto-connect", help="Find a running Chrome with remote debugging"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Remote provider: browserbase, browseruse, kernel"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Connect to a browser and list its tabs.
    
    Without options a local headless browser is launched.
    
    Examples:
        agent-browser tabs --cdp 9222
        agent-browser tabs --provider browserbase
    """
    _configure_logging(verbose)
    
    browser_settings = get_settings().browser
    options = LaunchOptions(
        headless=browser_settings.headless,
        browser=browser_settings.browser_type,
        cdp_url=cdp,
        auto_connect=auto_connect,
        provider=provider,
    )
    asyncio.run(_tabs_async(options))


async def _tabs_async(options: LaunchOptions) -> None:
    async with BrowserManager() as manager:
        try:
            await manager.launch(options)
            tab_list = await manager.list_tabs()
        except AgentBrowserError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(1)
        
        for warning in manager.get_and_clear_warnings():
            console.print(f"[yellow]⚠ {warning}[/yellow]")
        
        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column("#", width=3)
        table.add_column("Title")
        table.add_column("URL", style="dim")
        
        for tab in tab_list:
            marker = "[green]●[/green] " if tab.active else "  "
            table.add_row(str(tab.index), marker + (tab.title or "[dim](untitled)[/dim]"), tab.url)
        
        console.print(table)


@app.command()
def record(
    url: str = typer.Argument(..., help="Page to record"),
    output: str = typer.Argument(..., help="Output file (.webm)"),
    seconds: float = typer.Option(5.0, "--seconds", "-s", help="Recording length in seconds"),
    visible: bool = typer.Option(False, "--visible", "-v", help="Run with visible browser"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose output"),
):
    """
    Record a page in a fresh local browser to a WebM video.
    
    Examples:
        agent-browser record https://example.com demo.webm --seconds 10
    """
    _configure_logging(verbose)
    asyncio.run(_record_async(url, output, seconds, headless=not visible))


async def _record_async(url: str, output: str, seconds: float, headless: bool) -> None:
    async with BrowserManager() as manager:
        try:
            await manager.launch(LaunchOptions(
                headless=headless,
                browser=get_settings().browser.browser_type,
            ))
            await manager.start_recording(output, url)
        except AgentBrowserError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(1)
        
        with console.status(f"Recording {url} for {seconds:g}s..."):
            await asyncio.sleep(seconds)
        
        result = await manager.stop_recording()
    
    if result.error:
        console.print(f"[red]✗ {result.error}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓ Saved {result.path}[/green]")


if __name__ == "__main__":
    app()
