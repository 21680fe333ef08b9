"""Assistant chat and image generation CLI commands."""

import asyncio
from pathlib import Path

from src.translation.assistant import (
    IMAGE_SIZES,
    ImageGenerationError,
    MangaImageGenerator,
    PromptKeySelector,
    create_chat_session,
    decode_data_url,
)
from src.utils.config import load_config


EXIT_WORDS = {"exit", "quit", ":q"}


async def stream_reply(session, text: str) -> str:
    """Print a reply as it arrives and return the full text."""
    parts = []
    async for part in session.send_message_stream(text):
        print(part, end="", flush=True)
        parts.append(part)
    print()
    return "".join(parts)


async def chat_loop(session) -> None:
    while True:
        try:
            text = input("> ").strip()
        except EOFError:
            print()
            return
        if not text:
            continue
        if text.lower() in EXIT_WORDS:
            return
        try:
            await stream_reply(session, text)
        except Exception as e:
            print(f"✗ Request failed: {e}")


def cmd_chat(args):
    """Talk to the manga assistant."""
    config = load_config(Path(args.config) if args.config else None)
    if not config.api_key:
        print("Error: no API key configured (set MANGATL_API_KEY or api_key in the config file)")
        return 1

    session = create_chat_session(config)

    if args.message:
        try:
            asyncio.run(stream_reply(session, args.message))
        except Exception as e:
            print(f"✗ Request failed: {e}")
            return 1
        return 0

    print("Manga assistant. Type 'exit' to leave.")
    try:
        asyncio.run(chat_loop(session))
    except KeyboardInterrupt:
        print()
    return 0


def cmd_generate(args):
    """Generate an image from a prompt."""
    config = load_config(Path(args.config) if args.config else None)
    generator = MangaImageGenerator(config, PromptKeySelector(config.api_key))

    print(f"Generating {args.size} image...")
    try:
        data_url = asyncio.run(generator.generate(args.prompt, args.size))
    except (ValueError, ImageGenerationError) as e:
        print(f"✗ {e}")
        return 1

    mime_type, image_bytes = decode_data_url(data_url)
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(image_bytes)
    print(f"✓ Saved {mime_type} image to {output_path}")
    return 0


def setup_assistant_commands(subparsers):
    """Setup assistant subcommands."""
    chat_parser = subparsers.add_parser("chat", help="Chat with the manga assistant")
    chat_parser.add_argument("-m", "--message", help="Send one message and exit")
    chat_parser.set_defaults(func=cmd_chat)

    generate_parser = subparsers.add_parser("generate", help="Generate an image from a prompt")
    generate_parser.add_argument("prompt", help="Image description")
    generate_parser.add_argument("--size", choices=list(IMAGE_SIZES), default="1K", help="Image size (default: 1K)")
    generate_parser.add_argument("--output", default="generated.png", help="Where to save the image")
    generate_parser.set_defaults(func=cmd_generate)
