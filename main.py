"""Simple CLI entry point for the Airi marketplace assistant."""

import argparse
from pathlib import Path

from airi_market import AiriAssistant, JsonCatalogRepository, ReplyRequest, RequesterProfile
from airi_market.config import DATA_FILE


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with Airi against the local catalog.")
    parser.add_argument("--role", choices=["buyer", "seller"], default="buyer")
    parser.add_argument("--mode", default="", help="pro, neon, or anything else for casual")
    parser.add_argument("--name", default=None)
    parser.add_argument("--town", default=None)
    parser.add_argument("--store-name", default=None)
    parser.add_argument("--seller-id", default=None, help="ask about this seller's availability")
    parser.add_argument("--data-file", type=Path, default=DATA_FILE)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    repository = JsonCatalogRepository(args.data_file)
    assistant = AiriAssistant()
    requester = RequesterProfile(name=args.name, town=args.town, store_name=args.store_name)
    print("Airi is ready. Type 'exit' or 'quit' to stop.")

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nExiting.")
            break

        if not user_input:
            continue
        if user_input.lower() in {"exit", "quit"}:
            print("Goodbye.")
            break

        # Reload each turn so listings added through the API show up.
        reply = assistant.reply(
            ReplyRequest(
                question=user_input,
                mode=args.mode,
                role=args.role,
                requester=requester,
                catalog=repository.load(),
                seller_id=args.seller_id,
            )
        )
        print(f"Airi: {reply.text}\n")

    print("Session ended.")


if __name__ == "__main__":
    main()
