from abc import ABC, abstractmethod
from .tokenizer import Token, TokenType
import unicodedata

MAX_NGRAM = 4


class TokenPreprocessor(ABC):
    @abstractmethod
    def preprocess(self, token: Token, document: str) -> Token:
        raise NotImplementedError()

    def preprocess_all(self, tokens: list[Token], document: str) -> list[Token]:
        return [self.preprocess(token, document) for token in tokens]


class LowercasePreprocessor(TokenPreprocessor):
    def preprocess(self, token: Token, document: str) -> Token:
        token.processed_form = token.processed_form.lower()
        return token


class RemoveDiacriticsPreprocessor(TokenPreprocessor):
    """Preprocessor for removing diacritics."""

    def preprocess(self, token: Token, document: str) -> Token:
        """
        Remove diacritics (accents) from the token.

        Args:
            token: Token to process
            document: Original file name or contents

        Returns:
            Processed token
        """
        if token.token_type != TokenType.WORD:
            return token

        # NFD splits accented characters into base character + combining mark
        normalized = unicodedata.normalize('NFD', token.processed_form)
        token.processed_form = ''.join([c for c in normalized if not unicodedata.combining(c)])
        return token


class MinLengthPreprocessor(TokenPreprocessor):
    """Preprocessor for dropping tokens that are too short to be meaningful."""

    def __init__(self, min_length=1, keep_numbers=True):
        """
        Args:
            min_length: Minimum token length (shorter tokens are blanked)
            keep_numbers: Keep number tokens regardless of their length
        """
        self.min_length = min_length
        self.keep_numbers = keep_numbers

    def preprocess(self, token: Token, document: str) -> Token:
        if self.keep_numbers and token.token_type == TokenType.NUMBER:
            return token

        if len(token.processed_form) < self.min_length:
            token.processed_form = ""

        return token


class NGramPreprocessor(TokenPreprocessor):
    """
    Replaces the token sequence with sliding windows of ``n`` consecutive
    tokens joined by ``.``, e.g. ``report final txt`` with n=2 becomes
    ``report.final``, ``final.txt``.
    """

    def __init__(self, n=2, separator="."):
        if not 1 <= n <= MAX_NGRAM:
            raise ValueError(f"n-gram length must be between 1 and {MAX_NGRAM}, got {n}")
        self.n = n
        self.separator = separator

    def preprocess(self, token: Token, document: str) -> Token:
        return token

    def preprocess_all(self, tokens: list[Token], document: str) -> list[Token]:
        # Blanked tokens are gone before windowing
        tokens = [token for token in tokens if token.processed_form]
        if self.n == 1:
            return tokens

        grams = []
        for i in range(len(tokens) - self.n + 1):
            window = tokens[i:i + self.n]
            gram = Token(
                self.separator.join(t.original_form for t in window),
                window[0].position,
                TokenType.WORD,
            )
            gram.processed_form = self.separator.join(t.processed_form for t in window)
            grams.append(gram)
        return grams


class PreprocessingPipeline:
    """Pipeline of token preprocessors."""

    def __init__(self, preprocessors, name="Default Pipeline"):
        """
        Initialize a preprocessing pipeline.

        Args:
            preprocessors: List of preprocessor objects
            name: Name of the pipeline
        """
        self.preprocessors = preprocessors
        self.name = name

    def preprocess(self, tokens: list[Token], document: str) -> list[Token]:
        """
        Apply all preprocessors to the tokens.

        Args:
            tokens: List of tokens to preprocess
            document: Original document text

        Returns:
            List of preprocessed tokens with blanked tokens removed
        """
        for preprocessor in self.preprocessors:
            tokens = preprocessor.preprocess_all(tokens, document)

        return [token for token in tokens if token.processed_form]

    def __repr__(self):
        return f"PreprocessingPipeline({self.name!r})"


def create_pipeline(config: dict) -> PreprocessingPipeline:
    """
    Create a preprocessing pipeline based on configuration.

    Steps are added in the order listed under ``pipeline_order``; a step
    whose switch is off in ``preprocessing`` is skipped.

    Args:
        config: Configuration dictionary (see ``FileSimilarity.config``)

    Returns:
        PreprocessingPipeline object
    """
    preproc_config = config.get("preprocessing", {})
    preprocessors = []
    pipeline_name = []

    for step in config.get("pipeline_order", []):
        if step == "lowercase" and preproc_config.get("lowercase", True):
            preprocessors.append(LowercasePreprocessor())
            pipeline_name.append("Lowercase")

        elif step == "remove_diacritics" and preproc_config.get("remove_diacritics", False):
            preprocessors.append(RemoveDiacriticsPreprocessor())
            pipeline_name.append("RemoveDiacritics")

        elif step == "min_length" and preproc_config.get("min_token_length", 1) > 1:
            min_length = preproc_config["min_token_length"]
            preprocessors.append(MinLengthPreprocessor(min_length=min_length))
            pipeline_name.append(f"MinLength({min_length})")

        elif step == "ngram" and preproc_config.get("ngram", 1) > 1:
            n = preproc_config["ngram"]
            preprocessors.append(NGramPreprocessor(n=n))
            pipeline_name.append(f"NGram({n})")

    return PreprocessingPipeline(preprocessors, name="+".join(pipeline_name) or "Identity")
