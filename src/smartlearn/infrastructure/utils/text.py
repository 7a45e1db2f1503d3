from typing import Any

import yaml  # type: ignore
import yaml.constructor

# ---------- YAML loading ----------


class UniqueKeyLoader(yaml.SafeLoader):
    """Custom YAML loader that forbids duplicate keys."""

    def construct_mapping(self, node, deep=False):
        mapping = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in mapping:
                raise yaml.constructor.ConstructorError(
                    None, None, f"found duplicate key '{key}'", key_node.start_mark
                )
            mapping.add(key)
        return super().construct_mapping(node, deep)


def load_yaml(raw: str) -> Any:
    """Load YAML with duplicate-key detection. Tabs are expanded first."""
    # Fix tabs (common user error)
    if "\t" in raw:
        raw = raw.replace("\t", "  ")
    return yaml.load(raw, Loader=UniqueKeyLoader)


# ---------- Frontmatter helpers ----------


def parse_frontmatter(md_text: str) -> tuple[dict[str, Any], str]:
    """Parse YAML frontmatter from markdown text.
    Uses line-by-line parsing instead of regex for reliability.
    Raises yaml.YAMLError if the frontmatter is present but invalid.
    """
    # Handle potential BOM (Byte Order Mark)
    md_text = md_text.lstrip("\ufeff")

    lines = md_text.split("\n")

    # Check for opening ---
    if not lines or lines[0].strip() != "---":
        return {}, md_text

    # Find closing ---
    yaml_end_line = None
    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == "---":
            yaml_end_line = i
            break

    if yaml_end_line is None:
        # No closing ---, treat as plain text
        return {}, md_text

    raw = "\n".join(lines[1:yaml_end_line])
    body = "\n".join(lines[yaml_end_line + 1 :])

    meta = load_yaml(raw) or {}
    if not isinstance(meta, dict):
        return {}, md_text
    return meta, body
