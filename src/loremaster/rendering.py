from __future__ import annotations

from .errors import RenderError
from .models import Book, Lore, Paragraph, Sentence

# Tokens that attach to the preceding token.
_ATTACH_LEFT = frozenset({".", ",", ";", ":", "!", "?", ")", "]", "}", "'s", "'", "n't", "'re", "'ll", "'ve", "'d", "'m"})
# Tokens that attach to the following token.
_ATTACH_RIGHT = frozenset({"(", "[", "{"})


class DetokenizingRenderer:
    """Joins token contents into prose with whitespace-aware punctuation rules."""

    def render(self, lore: Lore) -> Book:
        return Book(tuple(self.render_paragraph(paragraph) for paragraph in lore.paragraphs))

    def render_paragraph(self, paragraph: Paragraph) -> str:
        return " ".join(self.render_sentence(sentence) for sentence in paragraph.sentences)

    def render_sentence(self, sentence: Sentence) -> str:
        parts: list[str] = []
        glue_next = False
        for token in sentence.tokens:
            content = token.content.strip()
            if not content:
                continue
            if parts and not glue_next and content.lower() not in _ATTACH_LEFT:
                parts.append(" ")
            parts.append(content)
            glue_next = content in _ATTACH_RIGHT
        text = "".join(parts)
        if not text:
            raise RenderError(f"Failed to render sentence without content: {sentence}")
        return text[0].upper() + text[1:]
