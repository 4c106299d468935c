import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import List


class TokenType(Enum):
    WORD = "word"
    NUMBER = "number"


class Token:
    """A single token cut out of a file name or file contents."""

    def __init__(self, original_form: str, position: int, token_type: TokenType):
        self.original_form = original_form
        self.processed_form = original_form
        self.position = position
        self.token_type = token_type

    def __repr__(self):
        return f"Token({self.processed_form!r}, {self.position}, {self.token_type.name})"


class Tokenizer(ABC):
    @abstractmethod
    def tokenize(self, text: str) -> List[Token]:
        raise NotImplementedError()


class RegexMatchTokenizer(Tokenizer):
    """
    Cuts text into runs of letters and digits.

    ``[^\\W_]`` matches exactly the characters for which ``str.isalnum()`` is
    true, so ``_``, ``.``, ``-``, spaces and path separators all cut tokens
    and empty pieces never appear.
    """

    DEFAULT_PATTERN = r"[^\W_]+"

    def __init__(self, pattern: str = DEFAULT_PATTERN):
        self.pattern = re.compile(pattern)

    def tokenize(self, text: str) -> List[Token]:
        tokens = []
        for match in self.pattern.finditer(text):
            piece = match.group()
            token_type = TokenType.NUMBER if piece.isdigit() else TokenType.WORD
            tokens.append(Token(piece, match.start(), token_type))
        return tokens
