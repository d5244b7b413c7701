"""Bulk question import from JSON, CSV or YAML files."""
import csv
import json
import re
from pathlib import Path

from neet_tutor.models import QuestionInput

# Column for each QuestionInput field, after folding: lower case, letters only,
# so "option_a", "optionA" and "Option A" all read as "optiona"
FIELD_KEYS = {
    "question": "question",
    "option_a": "optiona",
    "option_b": "optionb",
    "option_c": "optionc",
    "option_d": "optiond",
    "correct_answer": "correctanswer",
    "explanation": "explanation",
    "difficulty": "difficulty",
    "subtopic_id": "subtopicid",
}


def read_question_rows(file_path: str) -> list[dict]:
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
    elif suffix == ".csv":
        with path.open(newline="", encoding="utf-8") as f:
            return list(csv.DictReader(f))
    elif suffix in (".yaml", ".yml"):
        import yaml
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    else:
        raise ValueError(f"Unsupported question file type: {suffix or path.name}")

    if isinstance(data, dict):
        data = data.get("questions", [])
    if not isinstance(data, list):
        raise ValueError(f"{path.name} does not contain a list of questions")
    return data


def _fold_key(key) -> str:
    return re.sub(r"[^a-z]", "", str(key).lower())


def row_to_input(row: dict, chapter_id: int) -> QuestionInput:
    folded = {_fold_key(k): v for k, v in row.items()}
    values = {field: folded.get(key) or None for field, key in FIELD_KEYS.items()}
    if not values["question"] or not values["option_a"] or not values["correct_answer"]:
        raise ValueError(f"Question row is missing question, option A or correct answer: {row}")
    subtopic = values["subtopic_id"]
    return QuestionInput(
        question=str(values["question"]).strip(),
        option_a=str(values["option_a"]).strip(),
        option_b=str(values["option_b"] or "").strip(),
        option_c=str(values["option_c"] or "").strip(),
        option_d=str(values["option_d"] or "").strip(),
        correct_answer=str(values["correct_answer"]).strip(),
        chapter_id=chapter_id,
        subtopic_id=int(subtopic) if subtopic is not None else None,
        explanation=values["explanation"],
        difficulty=values["difficulty"],
    )


def import_questions(storage, file_path: str, chapter_id: int) -> dict:
    """Import every question in the file into one chapter."""
    rows = read_question_rows(file_path)
    payloads = [row_to_input(row, chapter_id) for row in rows]
    created = storage.create_bulk_questions(payloads)
    return {"filename": Path(file_path).name, "chapter_id": chapter_id, "imported": len(created)}
