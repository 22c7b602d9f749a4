from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional

from pydantic import TypeAdapter, ValidationError

from .config import Settings, settings as default_settings
from .models import Question, Round

# Rounds as saved by the quiz editor: [{name, questions: [{text, type, correctAnswer, ...}]}]
DEFAULT_CATALOG: List[dict[str, Any]] = [
    {
        "name": "Round 1: Christmas Trivia",
        "questions": [
            {
                "text": "In the song 'The Twelve Days of Christmas', how many gold rings are mentioned?",
                "type": "text_input",
                "correctAnswer": "five",
                "pointValue": 100,
                "timeLimitMs": 15000,
            },
            {
                "text": "What is the name of the alternate personality of Ebenezer Scrooge's nephew, Fred, in 'A Christmas Carol'?",
                "type": "text_input",
                "correctAnswer": "topper",
                "pointValue": 150,
                "timeLimitMs": 20000,
            },
            {
                "text": "Which US state was the first to recognize Christmas as a legal holiday?",
                "type": "text_input",
                "correctAnswer": "alabama",
                "pointValue": 100,
                "timeLimitMs": 15000,
            },
        ],
    },
    {
        "name": "Round 2: Movie Quotes",
        "questions": [
            {
                "text": "Finish the quote: 'You smell like a Waffle House, and...' from Elf.",
                "type": "text_input",
                "correctAnswer": "you smell like a new years eve party",
                "pointValue": 200,
                "timeLimitMs": 20000,
            },
            {
                "text": "In Home Alone, what are the names of the two robbers?",
                "type": "text_input",
                "correctAnswer": "harry and marv",
                "pointValue": 250,
                "timeLimitMs": 25000,
            },
        ],
    },
]


class CatalogError(ValueError):
    pass


_questions_adapter = TypeAdapter(List[Question])


def parse_rounds(data: Any) -> List[Round]:
    """Build rounds from editor-format data; ids are 1-based positions."""
    if not isinstance(data, list):
        raise CatalogError("Catalog must be a list of rounds")

    rounds = []
    for i, raw in enumerate(data):
        if not isinstance(raw, dict):
            raise CatalogError(f"Round {i + 1} must be an object")
        try:
            questions = _questions_adapter.validate_python(raw.get("questions") or [])
            rounds.append(
                Round(id=raw.get("roundId", i + 1), name=raw.get("name") or f"Round {i + 1}", questions=questions)
            )
        except ValidationError as exc:
            raise CatalogError(f"Round {i + 1} is invalid: {exc}") from exc
    return rounds


def load_catalog(path: Optional[str | Path] = None, config: Settings = default_settings) -> List[Round]:
    """Load rounds from a JSON file, falling back to the built-in quiz."""
    path = path or config.CATALOG_PATH
    if not path:
        return parse_rounds(DEFAULT_CATALOG)

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Catalog {path} is not valid JSON: {exc}") from exc
    return parse_rounds(data)
