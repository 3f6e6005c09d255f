"""Name normalization for fuzzy comparison of file references."""

import re
import unicodedata
from pathlib import PureWindowsPath

from .models import CatalogEntry, ComparisonField, FileReference


class NameNormalizer:
    """Canonicalizes names so region tags and numbering styles compare equal."""

    # (USA), [!], {Rev 1} and the like
    BRACKETED_CHUNK = re.compile(r"\([^)]+\)|\[[^\]]+\]|\{[^}]+\}")

    STOPWORDS = re.compile(r"\b(?:and|the|an|a|der|das|die)\b", re.IGNORECASE)

    MULTIPLE_SPACES = re.compile(r"\s{2,}")

    STANDALONE_NUMBER = re.compile(r"\b\d{1,2}\b")

    ROMAN_NUMERALS = (
        (1000, "M"),
        (900, "CM"),
        (500, "D"),
        (400, "CD"),
        (100, "C"),
        (90, "XC"),
        (50, "L"),
        (40, "XL"),
        (10, "X"),
        (9, "IX"),
        (5, "V"),
        (4, "IV"),
        (1, "I"),
    )

    def normalize(self, text: str) -> str:
        """
        Normalize a raw name into its canonical comparison string.

        Args:
            text: Raw file name, entry name or path

        Returns:
            Uppercase comparison text with annotations, stopwords and
            punctuation removed and small numbers written as Roman numerals

        Example:
            >>> NameNormalizer().normalize("Final Fantasy 7 (USA) (Disc 1)")
            'FINAL FANTASY VII'
        """
        # Stripping punctuation can expose another stopword ("Th'e"), so run to a fixed point
        previous = None
        while text != previous:
            previous = text
            text = self._normalize_once(text)
        return text

    def _normalize_once(self, text: str) -> str:
        text = self.BRACKETED_CHUNK.sub("", text)

        without_stopwords = self.STOPWORDS.sub("", text.replace("&", "and"))
        if without_stopwords.strip():
            text = without_stopwords

        text = "".join(self._transpose_character(c) for c in text)
        text = self.MULTIPLE_SPACES.sub(" ", text)
        text = self.STANDALONE_NUMBER.sub(self._romanize_match, text)

        return text.strip().upper()

    @staticmethod
    def _transpose_character(char: str) -> str:
        """Drop punctuation and pictographs, keep other symbols as a '+' marker."""
        category = unicodedata.category(char)
        if category.startswith("P") or category == "So":
            return ""
        if category.startswith("S"):
            return "+"
        return char

    def _romanize_match(self, match: re.Match) -> str:
        number = int(match.group(0))
        if number == 0:
            return match.group(0)
        return self.to_roman_numeral(number)

    def to_roman_numeral(self, number: int) -> str:
        """Convert a positive integer to uppercase Roman numerals."""
        numeral = []
        for value, symbol in self.ROMAN_NUMERALS:
            while number >= value:
                number -= value
                numeral.append(symbol)
        return "".join(numeral)

    def select_text(
        self, entry: CatalogEntry, file: FileReference, resolved_path: str, field: ComparisonField
    ) -> str:
        """
        Pick the raw text of a file reference that should be compared.

        Args:
            entry: Entry the file belongs to
            file: The file reference
            resolved_path: Expanded absolute path of the file
            field: Which text to use

        Returns:
            The raw, not yet normalized, comparison text
        """
        if field == ComparisonField.ENTRY_NAME:
            return entry.name
        if field == ComparisonField.FULL_PATH:
            return resolved_path
        return PureWindowsPath(resolved_path).stem

    def comparison_text(
        self, entry: CatalogEntry, file: FileReference, resolved_path: str, field: ComparisonField
    ) -> str:
        """Selected and normalized comparison text of a file reference."""
        return self.normalize(self.select_text(entry, file, resolved_path, field))
