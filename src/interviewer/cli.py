from __future__ import annotations
from pathlib import Path
from typing import Optional
import typer

from .bootstrap import build_app
from .config_loader import ConfigError
from .core.errors import InterviewerError
from .logs import configure_logging

app = typer.Typer(add_completion=False, help="Timed system-design interview sessions.")

DEFAULT_CONFIG = Path("config/default.yaml")


def _log_level(cfg: dict) -> str:
    return str((cfg.get("logging") or {}).get("level", "INFO"))


@app.command()
def serve(
    config: Path = typer.Option(DEFAULT_CONFIG, help="YAML config file."),
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(8080),
    provider: Optional[str] = typer.Option(None, help="Backend for completion and speech: openai or echo."),
    model: Optional[str] = typer.Option(None, help="Override model.name."),
):
    """Run the HTTP API."""
    from .web.app import create_app
    import uvicorn

    try:
        ctx = build_app(config, provider=provider, model=model)
    except ConfigError as e:
        typer.echo(f"[config] {e}", err=True)
        raise typer.Exit(code=2)
    level = _log_level(ctx["cfg"])
    configure_logging(level)
    uvicorn.run(create_app(services=ctx), host=host, port=port, log_level=level.lower())


@app.command()
def practice(
    article: str = typer.Argument(..., help="Link to the article the interview is based on."),
    minutes: float = typer.Option(5.0, help="Time limit in minutes."),
    config: Path = typer.Option(DEFAULT_CONFIG, help="YAML config file."),
    provider: Optional[str] = typer.Option(None, help="Backend: openai or echo."),
):
    """Run one interview session in the terminal."""
    try:
        ctx = build_app(config, provider=provider)
    except ConfigError as e:
        typer.echo(f"[config] {e}", err=True)
        raise typer.Exit(code=2)
    configure_logging(_log_level(ctx["cfg"]))
    controller = ctx["controller"]
    use_stream = bool((ctx["cfg"].get("runtime") or {}).get("stream", False))

    def _play(events) -> None:
        try:
            for event in events:
                if event.kind == "fragment":
                    print(event.data, end="", flush=True)
            print("")
        except KeyboardInterrupt:
            # Closing the stream releases the session; nothing is committed
            events.close()
            print("\n[stream interrupted]")

    try:
        if use_stream:
            events = controller.start_session_stream(article, minutes * 60)
            session_id = next(events).data
            _play(events)
        else:
            session_id, reply = controller.start_session(article, minutes * 60)
            print(reply)
    except InterviewerError as e:
        typer.echo(f"[{e.kind}] {e}", err=True)
        raise typer.Exit(code=1)

    print("Type /help for commands. Ctrl+C to quit.")
    while True:
        try:
            user_input = input("you> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            return

        if user_input in ("/exit", "/quit"):
            controller.close_session(session_id)
            print("Bye.")
            return

        if user_input == "/help":
            print("Commands: /help, /id, /time, /exit, /quit")
            continue

        if user_input == "/id":
            print(session_id)
            continue

        if user_input == "/time":
            st = controller.describe(session_id)
            print(f"{int(st.remaining_seconds)}s left of {int(st.time_limit_seconds)}s")
            continue

        try:
            if use_stream:
                _play(controller.submit_message_stream(session_id, user_input))
            else:
                print(controller.submit_message(session_id, user_input))
        except InterviewerError as e:
            print(f"[{e.kind}] {e}")
            if not controller.describe(session_id).active:
                return


if __name__ == "__main__":
    app()
