"""Token re-streaming for providers that do not stream.

When a completion arrives whole, its text is segmented into synthetic
tokens so the client sees the same token frames whichever strategy or
provider produced the answer.
"""

from collections.abc import Iterator


class SynthesizedTokens:
    """Lazy, restartable segmentation of a finished text.

    Iterating yields consecutive slices of ``size`` characters; every new
    iteration starts again from the beginning.

    Example:
        >>> list(SynthesizedTokens("4"))
        ['4']
        >>> "".join(SynthesizedTokens("Answer based on X", size=4))
        'Answer based on X'
    """

    def __init__(self, text: str, size: int = 1) -> None:
        if size < 1:
            raise ValueError(f"size must be at least 1, got {size}")
        self.text = text
        self.size = size

    def __iter__(self) -> Iterator[str]:
        for start in range(0, len(self.text), self.size):
            yield self.text[start : start + self.size]

    def __len__(self) -> int:
        return -(-len(self.text) // self.size)


def synthesize_tokens(text: str, size: int = 1) -> SynthesizedTokens:
    return SynthesizedTokens(text, size)


class RoundText:
    """Tracks the text streamed during one completion round.

    Once the round's full text is known, ``remainder`` gives the part the
    client has not seen yet.
    """

    def __init__(self) -> None:
        self._parts: list[str] = []

    def add(self, fragment: str) -> None:
        self._parts.append(fragment)

    @property
    def streamed(self) -> str:
        return "".join(self._parts)

    def remainder(self, full_text: str) -> str:
        """Unstreamed suffix of ``full_text``.

        If the streamed fragments diverge from the final text, nothing more
        is emitted; the client already holds the provider's own rendering.
        """
        streamed = self.streamed
        if full_text.startswith(streamed):
            return full_text[len(streamed) :]
        return ""

    def reset(self) -> None:
        self._parts.clear()
