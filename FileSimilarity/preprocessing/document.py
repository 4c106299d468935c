from collections import Counter
from typing import Dict, List, Optional
from .tokenizer import Tokenizer, RegexMatchTokenizer, Token
from .preprocess import PreprocessingPipeline


class FileEntry:
    """
    Represents one file taking part in the similarity ranking.
    Stores the label shown in results and the text its terms come from.
    """

    def __init__(self, name: str, text: Optional[str] = None, size: int = 0, path: str = None):
        """
        Initialize a file entry.

        Args:
            name: Label reported in results (a file name or a path)
            text: Text to tokenize, defaults to the name itself
            size: File size in bytes, 0 when unknown
            path: Filesystem path, if the entry came from a scan
        """
        self.name = name
        self.text = name if text is None else text
        self.size = size
        self.path = path
        self.tokens: Optional[List[Token]] = None
        self.processed_tokens: Optional[List[Token]] = None
        self.term_vector: Optional[Dict[str, float]] = None

    def tokenize(self, tokenizer: Tokenizer = None) -> 'FileEntry':
        """
        Tokenize the entry text.

        Args:
            tokenizer: Tokenizer to use (defaults to RegexMatchTokenizer)

        Returns:
            Self for chaining operations
        """
        tokenizer = tokenizer or RegexMatchTokenizer()
        self.tokens = tokenizer.tokenize(self.text)
        return self

    def preprocess(self, preprocessing_pipeline: PreprocessingPipeline) -> 'FileEntry':
        if self.tokens is None:
            self.tokenize()

        self.processed_tokens = preprocessing_pipeline.preprocess(self.tokens, self.text)
        return self

    def get_terms(self) -> List[str]:
        """Preprocessed, non-empty terms in order of appearance."""
        if not self.processed_tokens:
            return []

        return [token.processed_form for token in self.processed_tokens
                if token.processed_form]

    def term_frequencies(self) -> Counter:
        return Counter(self.get_terms())

    def __repr__(self):
        return f"FileEntry({self.name!r}, size={self.size})"
