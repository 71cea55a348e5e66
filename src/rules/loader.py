import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.rules.models import Rules

# Rules may live inside a markdown document as a ```yaml fence
_YAML_FENCE = re.compile(r"^\s*```ya?ml[^\n]*\n(.*?)^\s*```", re.MULTILINE | re.DOTALL)


def rules_text(content: str) -> str:
    """Return the body of the first yaml fence, or the whole text if there is none."""
    match = _YAML_FENCE.search(content)
    return match.group(1) if match else content


def load_rules(path: Path) -> Rules:
    """
    Read, parse and validate the rules file.

    Raises:
        FileNotFoundError: path does not exist.
        ValueError: YAML syntax error or schema violation.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    source = rules_text(path.read_text(encoding="utf-8"))
    try:
        data = yaml.safe_load(source)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in {path.name}: {e}") from e

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed for {path.name}:\n{e}") from e
