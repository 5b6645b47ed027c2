"""CLI front end for image-to-video generation.

Usage:
    python -m animator.runner generate --image photo.jpg --prompt "A gentle breeze" --aspect-ratio 9:16
    python -m animator.runner check-key
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.status import Status

from animator.config import client_kwargs, get_max_wait, get_output_dir, get_poll_interval, load_config
from animator.credentials import ConfigCredentialSelector, CredentialGate
from animator.encoder import load_source_image
from animator.messages import MESSAGE_INTERVAL, framing_for, message_at
from animator.models import AspectRatio, AwaitingApiKey, ErrorKind, Failed, GenerationRequest, Ready, Slot
from animator.orchestrator import GenerationOrchestrator
from animator.resources import ResourceLifecycleManager
from veo_client import VeoClient

console = Console()

_DEFAULT_CONFIG = "config.yaml"
_BILLING_DOCS = "https://ai.google.dev/gemini-api/docs/billing"


def _setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quiet down httpx unless debugging
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def _prompt_for_key() -> str:
    return click.prompt("Gemini API key", hide_input=True)


async def _rotate_messages(status: Status) -> None:
    tick = 0
    while True:
        await asyncio.sleep(MESSAGE_INTERVAL)
        tick += 1
        status.update(f"[cyan]{message_at(tick)}[/cyan]")


async def _run_with_status(orchestrator: GenerationOrchestrator, request: GenerationRequest):
    with console.status(f"[cyan]{message_at(0)}[/cyan]") as status:
        ticker = asyncio.create_task(_rotate_messages(status))
        try:
            return await orchestrator.generate(request)
        finally:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker


async def _generate(
    config_path: str,
    image: Path,
    prompt: str,
    aspect_ratio: AspectRatio,
    output: Path | None,
) -> bool:
    config = load_config(config_path)
    selector = ConfigCredentialSelector(config, prompt=_prompt_for_key)
    gate = CredentialGate(selector)
    source = load_source_image(image)

    with ResourceLifecycleManager() as resources:
        async with VeoClient(api_key=selector.api_key, **client_kwargs(config)) as client:
            orchestrator = GenerationOrchestrator(
                client,
                resources,
                gate,
                poll_interval=get_poll_interval(config),
                max_wait=get_max_wait(config),
            )

            state = await orchestrator.start()
            if isinstance(state, AwaitingApiKey):
                console.print("[bold]API Key Required[/bold]")
                console.print(
                    "Veo video generation needs an API key for a project with billing enabled. "
                    f"See {_BILLING_DOCS}"
                )
                await orchestrator.select_credential()
                client.api_key = gate.credential

            await orchestrator.select_image(source)
            request = GenerationRequest(source_image=source, prompt=prompt, aspect_ratio=aspect_ratio)

            state = await _run_with_status(orchestrator, request)
            if isinstance(state, Failed) and state.kind == ErrorKind.AUTH:
                # One retry after the user picks a new key.
                console.print(f"[red]{state.message}[/red]")
                await orchestrator.select_credential()
                client.api_key = gate.credential
                state = await _run_with_status(orchestrator, request)

            if isinstance(state, Ready):
                dest = output or get_output_dir(config) / f"{image.stem}.mp4"
                resources.export(Slot.RESULT, dest)
                console.print("[bold green]Your Animated Image![/bold green]")
                console.print(f"  {framing_for(aspect_ratio)} video ({state.handle.size / 1024:.1f} KB) -> {dest}")
                return True

            if isinstance(state, Failed):
                console.print(f"[red]{state.message}[/red]")
                if state.kind == ErrorKind.AUTH:
                    console.print("[yellow]Set a valid key in config.yaml or GEMINI_API_KEY and try again.[/yellow]")
            return False


async def _check_key(config_path: str) -> bool:
    config = load_config(config_path)
    gate = CredentialGate(ConfigCredentialSelector(config))
    return await gate.probe()


@click.group()
@click.option("--config", "-c", default=_DEFAULT_CONFIG, help="Path to config.yaml")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config: str, verbose: bool) -> None:
    """Animate a still image with Veo."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    _setup_logging(verbose)


@cli.command("generate")
@click.option("--image", "-i", required=True, type=click.Path(dir_okay=False, path_type=Path), help="Source image")
@click.option("--prompt", "-p", required=True, help="Describe the animation")
@click.option(
    "--aspect-ratio", "-a",
    type=click.Choice([r.value for r in AspectRatio]),
    default=AspectRatio.LANDSCAPE.value,
    show_default=True,
    help="Landscape (16:9) or portrait (9:16)",
)
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False, path_type=Path), help="Where to save the video")
@click.pass_context
def cmd_generate(
    ctx: click.Context,
    image: Path,
    prompt: str,
    aspect_ratio: str,
    output: Path | None,
) -> None:
    """Generate a video from an image and a motion prompt."""
    config_path = ctx.obj["config"]
    console.print("[bold]Starting video generation...[/bold]")

    try:
        ok = asyncio.run(_generate(config_path, image, prompt, AspectRatio(aspect_ratio), output))
    except FileNotFoundError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)
    except ValueError as exc:
        console.print(f"[red]Configuration error: {exc}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(130)

    if not ok:
        sys.exit(1)


@cli.command("check-key")
@click.pass_context
def cmd_check_key(ctx: click.Context) -> None:
    """Report whether an API key is configured."""
    try:
        present = asyncio.run(_check_key(ctx.obj["config"]))
    except FileNotFoundError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    if present:
        console.print("[green]API key configured.[/green]")
    else:
        console.print("[yellow]No API key configured. Set api.api_key in config.yaml or GEMINI_API_KEY.[/yellow]")
        sys.exit(1)


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
