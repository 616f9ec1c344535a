from __future__ import annotations

from pathlib import Path
import signal

import typer

from lyric_sync.auth.authorize import build_authorize_url, exchange_code
from lyric_sync.auth.tokens import TokenManager
from lyric_sync.config import AppConfig, load_config
from lyric_sync.errors import ConfigError, LyricSyncError
from lyric_sync.logging_setup import setup_logging
from lyric_sync.lyrics.fetcher import LyricFetcher
from lyric_sync.lyrics.model import LyricLine
from lyric_sync.lyrics.webtoken import WebPlayerTokens
from lyric_sync.net.transport import HttpTransport
from lyric_sync.player.poller import PlayerPoller
from lyric_sync.render.console import ConsoleSink
from lyric_sync.sync.session import SyncSession


app = typer.Typer(no_args_is_help=True, add_completion=False)

EnvFileOption = typer.Option(Path(".env"), "--env-file", help="dotenv file with SPOTIFY_* credentials")


def _config(env_file: Path, *, require_credentials: bool = True) -> AppConfig:
    try:
        return load_config(env_file, require_credentials=require_credentials)
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=2)


def _fmt_ms(ms: int) -> str:
    m, rem = divmod(ms, 60_000)
    return f"{m:02d}:{rem // 1000:02d}.{(rem % 1000) // 10:02d}"


@app.command()
def watch(
    env_file: Path = EnvFileOption,
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    context_lines: int | None = typer.Option(None, "--context", help="Upcoming lines shown under the current one"),
    no_alt_screen: bool = typer.Option(False, "--no-alt-screen", help="Do not use alternate screen buffer"),
):
    """
    Follow the track playing on Spotify and print each lyric line on time.
    """
    cfg = _config(env_file)
    setup_logging(debug)

    session = SyncSession.from_config(cfg)
    sink = ConsoleSink(
        context_lines=cfg.context_lines if context_lines is None else context_lines,
        use_alt_screen=cfg.use_alt_screen and not no_alt_screen and not debug,
    )

    @session.on_lyric
    def _show(line: LyricLine, remaining: tuple[LyricLine, ...]) -> None:
        sink.title = session.state.track_name
        sink(line, remaining)

    # Ctrl+C cancels the pending timer instead of tearing through the loop
    signal.signal(signal.SIGINT, lambda signum, frame: session.stop())
    with sink:
        session.run_forever()


@app.command()
def authorize(
    code: str | None = typer.Option(None, "--code", help="Code (or redirected URL) returned by Spotify"),
    env_file: Path = EnvFileOption,
):
    """
    Obtain a refresh token: without --code print the URL to open, with it exchange the code.
    """
    cfg = _config(env_file, require_credentials=False)
    if not cfg.client_id:
        typer.echo("Configuration error: SPOTIFY_CLIENT_ID is required", err=True)
        raise typer.Exit(code=2)

    if not code:
        typer.echo(build_authorize_url(cfg.client_id, cfg.redirect_uri))
        typer.echo("Authorize the above URL and pass the code with --code to get the tokens")
        return

    transport = HttpTransport(timeout_s=cfg.http_timeout_s)
    try:
        pair = exchange_code(
            transport,
            client_id=cfg.client_id,
            client_secret=cfg.client_secret,
            code=code,
            redirect_uri=cfg.redirect_uri,
        )
    except LyricSyncError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"SPOTIFY_ACCESS_TOKEN={pair.access_token}")
    typer.echo(f"SPOTIFY_REFRESH_TOKEN={pair.refresh_token}")


@app.command()
def now(env_file: Path = EnvFileOption, debug: bool = typer.Option(False, "--debug")):
    """Print the current playback state once."""
    cfg = _config(env_file)
    setup_logging(debug)
    transport = HttpTransport(timeout_s=cfg.http_timeout_s)
    poller = PlayerPoller(transport, TokenManager(cfg.credentials(), transport, ttl_s=cfg.token_ttl_s))
    try:
        snap = poller.poll_once()
    except LyricSyncError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if snap.track is None:
        typer.echo("Nothing is playing")
        return
    state = "playing" if snap.is_playing else "paused"
    typer.echo(f"{snap.track.name} [{snap.track.id}]")
    typer.echo(f"{state} {_fmt_ms(snap.progress_ms)} / {_fmt_ms(snap.track.duration_ms)}")


@app.command()
def lyrics(
    track_id: str,
    duration_ms: int = typer.Option(0, "--duration-ms", help="Track length, used to spread untimed lines"),
    env_file: Path = EnvFileOption,
    debug: bool = typer.Option(False, "--debug"),
):
    """Fetch and print the normalized lyric lines of one track."""
    cfg = _config(env_file)
    setup_logging(debug)
    transport = HttpTransport(timeout_s=cfg.http_timeout_s)
    try:
        token = WebPlayerTokens(transport, cfg.cookie).get()
        lines = LyricFetcher(transport).fetch(track_id, token, progress_ms=-1, duration_ms=duration_ms)
    except LyricSyncError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if not lines:
        typer.echo("No lyrics found")
        return
    for line in lines:
        typer.echo(f"[{_fmt_ms(line.offset_ms)}] {line.text}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
