from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer

from authshot.domain.errors import AuthshotError, MissingCredentialsError, MissingTargetError, SessionStoreError
from authshot.logger import configure_logging
from authshot.presentation.dependencies import (
    get_browser_factory,
    get_capture_use_case,
    get_clear_use_case,
    get_ensure_session,
    get_settings,
)

app = typer.Typer(help="Authenticated screenshot CLI")


@app.callback()
def main() -> None:
    configure_logging(get_settings().log_level)


@app.command()
def screenshot(
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Page to capture (defaults to TARGET_URL)"),
    login: Optional[str] = typer.Option(None, "--login", "-l", help="Login page (defaults to LOGIN_URL)"),
    out: Path = typer.Option(Path("screenshot.jpg"), "--out", "-o"),
) -> None:
    cfg = get_settings()
    uc = get_capture_use_case()
    try:
        result = asyncio.run(uc.execute(url or cfg.target_url or None, login or cfg.login_url or None))
    except MissingCredentialsError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)
    except AuthshotError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    out.write_bytes(result.image)
    source = "cache" if result.from_cache else "browser"
    typer.echo(f"{out} ({len(result.image)} bytes, {source})")


@app.command("ensure-session")
def ensure_session(
    login: Optional[str] = typer.Option(None, "--login", "-l"),
    expect: Optional[str] = typer.Option(None, "--expect", "-e", help="Expected post-login URL prefix"),
) -> None:
    cfg = get_settings()
    login_url = login or cfg.login_url
    if not login_url:
        typer.echo("Missing login URL", err=True)
        raise typer.Exit(code=2)
    try:
        creds = cfg.credentials()
    except MissingCredentialsError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)

    async def _run() -> str:
        uc = get_ensure_session()
        async with get_browser_factory().open_page() as page:
            result = await uc.execute(
                page, login_url, creds, selectors=cfg.selector_config(), expected_destination=expect
            )
        return f"{result.status} final_url={result.final_url or '-'} {result.message}"

    try:
        typer.echo(asyncio.run(_run()))
    except AuthshotError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)


@app.command("clear-cookies")
def clear_cookies(login: Optional[str] = typer.Option(None, "--login", "-l")) -> None:
    cfg = get_settings()
    login_url = login or cfg.login_url or None
    try:
        get_clear_use_case().execute(login_url)
    except MissingTargetError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)
    except SessionStoreError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Cleared cookies for {login_url}")


if __name__ == "__main__":
    app()
