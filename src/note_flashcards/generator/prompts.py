"""Prompts for card generation."""

STYLE_GUIDE = """
# Card Style Guide

## Core Principles
1. **Atomicity** - One fact per card, never combine multiple concepts
2. **Active Recall** - Cards require retrieval, not recognition. No yes/no questions.
3. **Clarity** - Unambiguous questions with only one correct answer
4. **Brevity** - Answers typically 1-15 words, max 30 for lists/processes

## Questions
- Start questions with: What, Why, How, When, Who, Where
- Vary the question type: definitions, comparisons, applications, mnemonics
- Answer should stand alone without seeing the question

## DO Make Cards For
- Core concepts and definitions
- Relationships between ideas
- Processes and their steps
- Essential terminology
- Surprising or counterintuitive facts

## DON'T Make Cards For
- Filler content and transitions
- Trivia disconnected from core concepts
- Highly context-dependent statements
"""

SYSTEM_PROMPT = f"""You are an expert at turning study notes into high-quality flashcards.
You extract the core knowledge points of a note and write precise question/answer pairs.

{STYLE_GUIDE}
"""

RESPONSE_FORMAT = """Return a JSON object in exactly this shape:

```json
{{
  "cards": [
    {{
      "question": "...",
      "answer": "...",
      "sourceSection": "heading or topic the card is based on",
      "tags": ["tag1", "tag2"]
    }}
  ]
}}
```

Return ONLY the JSON object, no other text."""

NOTE_PROMPT_TEMPLATE = (
    """Generate {count} flashcards from this note.

---

**NOTE CONTENT:**

{content}

---

"""
    + RESPONSE_FORMAT
)

CHUNK_PROMPT_TEMPLATE = (
    """Generate {count} flashcards from this section of a longer note.

[Part {part} of {total_parts}]
**Section:** {title}

---

**SECTION CONTENT:**

{content}

---

Only use information from this section. Use the section title as sourceSection
when no more specific heading applies.

"""
    + RESPONSE_FORMAT
)


def build_note_prompt(content: str, count: int) -> str:
    """Prompt for generating cards from a whole note."""
    return NOTE_PROMPT_TEMPLATE.format(count=count, content=content)


def build_chunk_prompt(
    content: str,
    count: int,
    part: int,
    total_parts: int,
    title: str | None = None,
) -> str:
    """Prompt for generating cards from one chunk of a note."""
    return CHUNK_PROMPT_TEMPLATE.format(
        count=count,
        part=part,
        total_parts=total_parts,
        title=title or "untitled",
        content=content,
    )
