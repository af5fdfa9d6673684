"""Command-line interface for geminispeak."""

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

from geminispeak.base import GeminiConfig
from geminispeak.builders import ConversationBuilder
from geminispeak.client import GeminiClient
from geminispeak.exceptions import GeminiSpeakError
from geminispeak.wire import GeminiRole

DEFAULT_CHAT_MODEL = "gemini-2.5-flash"
DEFAULT_EMBED_MODEL = "text-embedding-004"


async def cmd_chat(args):
    """Send a single prompt to generateContent."""
    contents = ConversationBuilder().add_text(GeminiRole.USER, args.message).render()

    async with GeminiClient(GeminiConfig.from_env()) as client:
        request = client.generate_request(args.model, contents)
        if args.system:
            request = request.with_system_prompt(args.system)
        if args.temperature is not None:
            request = request.with_temperature(args.temperature)
        if args.max_tokens is not None:
            request = request.with_max_output_tokens(args.max_tokens)

        for problem in request.validate():
            print(f"Warning: {problem.field}: {problem.message}", file=sys.stderr)

        response = await client.generate(request)

    if args.json:
        print(json.dumps(response.to_summary(), indent=2))
    else:
        print(response.get_text_content() or "")
        if args.verbose:
            print(
                f"\n[Tokens: {response.get_input_tokens()} in, "
                f"{response.get_output_tokens()} out, "
                f"finish: {response.get_finish_reason()}]"
            )
    return 0


async def cmd_embed(args):
    """Embed one text with embedContent and print a summary of the vector."""
    async with GeminiClient(GeminiConfig.from_env()) as client:
        request = client.embeddings_request(args.model, args.text)
        if args.task_type:
            request = request.with_task_type(args.task_type.upper())
        if args.title:
            request = request.with_title(args.title)
        if args.dimensions is not None:
            request = request.with_output_dimensionality(args.dimensions)

        if not request.is_valid_configuration():
            print("Warning: embedding configuration looks invalid", file=sys.stderr)

        response = await client.embed(request)

    if args.json:
        print(json.dumps(response.to_summary(), indent=2))
    else:
        print(f"Dimensions: {response.get_dimensions()}")
        print(f"Magnitude:  {response.get_embedding_magnitude()}")
        print(f"First values: {response.get_first_n_values(5)}")
    return 0


def main(argv=None):
    """Main CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Talk to the Gemini API from the command line",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", action="store_true", help="Show additional information")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    chat_parser = subparsers.add_parser("chat", help="Send a chat message")
    chat_parser.add_argument("message", help="Message to send")
    chat_parser.add_argument(
        "--model", default=DEFAULT_CHAT_MODEL, help=f"Model to use (default: {DEFAULT_CHAT_MODEL})"
    )
    chat_parser.add_argument("--system", help="System prompt")
    chat_parser.add_argument("--temperature", type=float, help="Temperature (0.0-2.0)")
    chat_parser.add_argument("--max-tokens", type=int, help="Maximum tokens to generate")
    chat_parser.add_argument("--json", action="store_true", help="Output as JSON")

    embed_parser = subparsers.add_parser("embed", help="Embed a text")
    embed_parser.add_argument("text", help="Text to embed")
    embed_parser.add_argument(
        "--model", default=DEFAULT_EMBED_MODEL, help=f"Model to use (default: {DEFAULT_EMBED_MODEL})"
    )
    embed_parser.add_argument("--task-type", help="Task type, e.g. RETRIEVAL_QUERY")
    embed_parser.add_argument("--title", help="Document title (for RETRIEVAL_DOCUMENT)")
    embed_parser.add_argument("--dimensions", type=int, help="Output dimensionality")
    embed_parser.add_argument("--json", action="store_true", help="Output as JSON")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    command_map = {
        "chat": cmd_chat,
        "embed": cmd_embed,
    }

    try:
        return asyncio.run(command_map[args.command](args))
    except GeminiSpeakError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    exit(main())
