from __future__ import annotations

import argparse
import json
from pathlib import Path

from app.modules.flashcards.errors import (
    FlashcardValidationError,
    ProviderError,
    ProviderTimeoutError,
)
from app.modules.flashcards.generator import generate_flashcards_sync
from app.modules.flashcards.models import DifficultyFilter


def _load_notes(args: argparse.Namespace) -> str:
    if args.notes and args.notes_file:
        raise SystemExit("Provide either --notes or --notes-file, not both")
    if args.notes_file:
        return Path(args.notes_file).read_text(encoding="utf-8")
    if args.notes:
        return args.notes
    raise SystemExit("--notes or --notes-file is required")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="flashcards-gen", description="Generate flashcards from study notes"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    g = sub.add_parser("generate", help="Generate flashcards from notes")
    g.add_argument("--notes", "-n", help="Study notes (text)")
    g.add_argument("--notes-file", help="Path to a file containing the notes")
    g.add_argument("--count", "-c", type=int, default=10, help="Cards to request")
    g.add_argument(
        "--difficulty",
        "-d",
        default=DifficultyFilter.MIXED.value,
        choices=[d.value for d in DifficultyFilter],
    )
    g.add_argument("--subject", "-s", help="Optional subject/category hint")

    args = parser.parse_args(argv)
    if args.cmd == "generate":
        notes = _load_notes(args)
        try:
            result = generate_flashcards_sync(
                notes, args.count, args.difficulty, args.subject
            )
        except FlashcardValidationError as e:
            print(f"Invalid request: {e}")
            return 2
        except (ProviderError, ProviderTimeoutError) as e:
            print(f"Generation failed: {e}")
            return 1
        print(json.dumps(result.model_dump(mode="json"), indent=2))
        return 0

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
