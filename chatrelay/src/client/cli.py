"""Terminal chat against a running chat relay server.

Usage:
    python -m chatrelay.src.client.cli --url http://localhost:3000
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from chatrelay.conf.config import Config
from chatrelay.src.client.chat_api import ChatApiClient, ChatApiError

logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"exit", "quit"}


def print_history(client: ChatApiClient, session: Optional[str]) -> None:
    """Print the stored conversation."""
    try:
        messages = client.get_history(session)
    except ChatApiError as e:
        print(f"[error] {e.message}")
        return
    for message in messages:
        print(f"{message['sender']}> {message['text']}")


def chat_turn(client: ChatApiClient, message: str, session: Optional[str], stream: bool) -> bool:
    """Send one message and print the reply.

    Returns:
        True if the exchange succeeded
    """
    if not stream:
        try:
            print(f"bot> {client.send_message(message, session)}")
            return True
        except ChatApiError as e:
            print(f"[error] {e.message}")
            return False

    succeeded = []
    print("bot> ", end="", flush=True)

    def on_token(token: str) -> None:
        print(token, end="", flush=True)

    def on_complete() -> None:
        print()
        succeeded.append(True)

    def on_error(error: str) -> None:
        print(f"\n[error] {error}")

    client.stream_message(message, on_token, on_complete, on_error, session_id=session)
    return bool(succeeded)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Chat with a chat relay server")
    parser.add_argument(
        "--url",
        type=str,
        default=Config.CLIENT_BASE_URL,
        help=f"Server URL (default: {Config.CLIENT_BASE_URL})",
    )
    parser.add_argument(
        "--session",
        type=str,
        default=None,
        help="Conversation key (default: the server uses your address)",
    )
    parser.add_argument(
        "--no-stream",
        action="store_true",
        help="Wait for the whole reply instead of streaming it",
    )
    parser.add_argument(
        "--history",
        action="store_true",
        help="Print the conversation so far and exit",
    )
    args = parser.parse_args(argv)

    client = ChatApiClient(base_url=args.url)
    if args.history:
        print_history(client, args.session)
        return 0

    print("Type a message, or 'exit' to quit.")
    while True:
        try:
            message = input("you> ")
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if message.strip().lower() in EXIT_COMMANDS:
            break
        if not message.strip():
            continue
        chat_turn(client, message, args.session, stream=not args.no_stream)
    return 0


if __name__ == "__main__":
    sys.exit(main())
