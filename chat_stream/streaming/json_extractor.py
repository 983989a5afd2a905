"""
Incremental JSON Extractor: Recovers the first JSON object from streamed text.

LLM responses often surround the structured answer with narration and with
markdown code fences. Tokens arrive in arbitrarily sized fragments, so the
extractor is a character-level state machine whose state is threaded through
every call as an explicit, immutable value.

Key Features:
- Chunk-invariant: the result never depends on how the text was split
- Brace counting that ignores braces inside JSON string literals
- Backtick fences of any width are skipped (never scanned for braces)
- Narration outside the captured object is returned as passthrough text
- At most one object is captured per session
"""

import logging
from typing import Annotated, List, Literal, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from ..schema.chat_schema import JsonResponse


logger = logging.getLogger(__name__)

OBJECT_OPEN = "{"
OBJECT_CLOSE = "}"
QUOTE = '"'
BACKSLASH = "\\"
FENCE_CHAR = "`"


# =============================================================================
# Extraction States
# =============================================================================

class Idle(BaseModel):
    """No capture in progress; characters pass through as narration."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["idle"] = "idle"


class Active(BaseModel):
    """Inside a captured JSON object."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["active"] = "active"
    buffer: str = Field(..., min_length=1, description="Captured text including the outer braces")
    depth: int = Field(..., ge=1, description="Unmatched '{' seen outside string literals")
    in_string: bool = Field(False, description="Scanner is inside a JSON string literal")
    escaped: bool = Field(False, description="Previous character was an unescaped backslash")


class MaybeFence(BaseModel):
    """Counting the backticks that open a fence."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["maybe_fence"] = "maybe_fence"
    tick_count: int = Field(..., ge=1)


class Fence(BaseModel):
    """Skipping a fenced region until a run of `width` backticks closes it."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["fence"] = "fence"
    width: int = Field(..., ge=1)
    run_length: int = Field(0, ge=0, description="Backticks in the current closing run")


ExtractionState = Annotated[
    Union[Idle, Active, MaybeFence, Fence],
    Field(discriminator="kind")
]


class ExtractionResult(NamedTuple):
    """Outcome of feeding one fragment to the extractor."""
    state: ExtractionState
    completed_json: Optional[str]
    passthrough: str
    # Unconsumed tail of the fragment once an object completed
    remainder: str = ""


# =============================================================================
# Transitions
# =============================================================================

def step(
    state: ExtractionState,
    ch: str,
    *,
    preserve_escapes: bool = True,
) -> Tuple[ExtractionState, Optional[str], str]:
    """
    Advance the state machine by a single character.

    Args:
        state: Current extraction state
        ch: The next character of the stream
        preserve_escapes: Keep the backslash of escape sequences in the
            captured buffer. When False the bare backslash is dropped and
            only the escaped character is kept.

    Returns:
        Tuple of (next state, completed JSON text or None, passthrough text)
    """
    kind = state.kind

    if kind == "idle":
        if ch == OBJECT_OPEN:
            return Active(buffer=OBJECT_OPEN, depth=1), None, ""
        if ch == FENCE_CHAR:
            return MaybeFence(tick_count=1), None, ch
        return state, None, ch

    if kind == "active":
        return _step_active(state, ch, preserve_escapes)

    if kind == "maybe_fence":
        if ch == FENCE_CHAR:
            return MaybeFence(tick_count=state.tick_count + 1), None, ch
        return Fence(width=state.tick_count, run_length=0), None, ch

    if kind == "fence":
        if ch == FENCE_CHAR:
            run_length = state.run_length + 1
            if run_length == state.width:
                return Idle(), None, ch
            return Fence(width=state.width, run_length=run_length), None, ch
        return Fence(width=state.width, run_length=0), None, ch

    raise TypeError(f"Unknown extraction state: {state!r}")


def _step_active(
    state: Active,
    ch: str,
    preserve_escapes: bool,
) -> Tuple[ExtractionState, Optional[str], str]:
    """Captured characters are never passthrough."""
    if state.escaped:
        # The escaped character is taken literally; it cannot close a string
        # or change the depth.
        prefix = BACKSLASH if preserve_escapes else ""
        return state.model_copy(update={"buffer": state.buffer + prefix + ch, "escaped": False}), None, ""

    if ch == BACKSLASH:
        # Deferred until the next character arrives
        return state.model_copy(update={"escaped": True}), None, ""

    buffer = state.buffer + ch

    if state.in_string:
        if ch == QUOTE:
            return state.model_copy(update={"buffer": buffer, "in_string": False}), None, ""
        return state.model_copy(update={"buffer": buffer}), None, ""

    if ch == OBJECT_OPEN:
        return state.model_copy(update={"buffer": buffer, "depth": state.depth + 1}), None, ""

    if ch == OBJECT_CLOSE:
        depth = state.depth - 1
        if depth == 0:
            return Idle(), buffer, ""
        return state.model_copy(update={"buffer": buffer, "depth": depth}), None, ""

    if ch == QUOTE:
        return state.model_copy(update={"buffer": buffer, "in_string": True}), None, ""

    return state.model_copy(update={"buffer": buffer}), None, ""


def extract_json_from_stream(
    fragment: str,
    state: Optional[ExtractionState] = None,
    *,
    preserve_escapes: bool = True,
) -> ExtractionResult:
    """
    Feed a fragment of streamed text through the state machine.

    Processing stops at the first completed object; the rest of the fragment
    is returned untouched as ``remainder``.

    Args:
        fragment: Text chunk from the stream (any size, may be empty)
        state: State returned by the previous call, or None to start fresh
        preserve_escapes: See step()

    Returns:
        ExtractionResult with the new state, the completed JSON (if any) and
        the passthrough narration

    Example:
        >>> result = extract_json_from_stream('foo {"a":"}{"} bar')
        >>> result.passthrough, result.completed_json, result.remainder
        ('foo ', '{"a":"}{"}', ' bar')
    """
    if state is None:
        state = Idle()

    passthrough: List[str] = []
    for index, ch in enumerate(fragment):
        state, completed, emitted = step(state, ch, preserve_escapes=preserve_escapes)
        if emitted:
            passthrough.append(emitted)
        if completed is not None:
            return ExtractionResult(state, completed, "".join(passthrough), fragment[index + 1:])

    return ExtractionResult(state, None, "".join(passthrough))


# =============================================================================
# Stateful wrapper
# =============================================================================

class IncrementalJsonExtractor:
    """
    Push-style wrapper around extract_json_from_stream for a single session.

    Example:
        >>> extractor = IncrementalJsonExtractor()
        >>> extractor.push('Here you go: {"answer"')
        >>> extractor.push(': 42} hope that helps')
        '{"answer": 42}'
        >>> extractor.antecedent
        'Here you go: '
    """

    def __init__(self, preserve_escapes: bool = True):
        self.preserve_escapes = preserve_escapes
        self.state: ExtractionState = Idle()
        self.antecedent = ""
        self.json: Optional[str] = None
        # Text received after the object completed; never scanned
        self.trailing = ""

    @property
    def done(self) -> bool:
        return self.json is not None

    def push(self, chunk: str) -> Optional[str]:
        """
        Push a chunk of text.

        Returns:
            The completed JSON text on the call that completes it, else None
        """
        if self.done:
            self.trailing += chunk
            return None

        result = extract_json_from_stream(chunk, self.state, preserve_escapes=self.preserve_escapes)
        self.state = result.state
        self.antecedent += result.passthrough

        if result.completed_json is not None:
            self.json = result.completed_json
            self.trailing = result.remainder
            return self.json
        return None

    def flush(self) -> JsonResponse:
        """
        End the session and return what was recovered.

        An unterminated capture is discarded; it is not an error.
        """
        discard_unterminated(self.state)
        self.state = Idle()
        return JsonResponse(antecedent=self.antecedent, json=self.json)


def discard_unterminated(state: ExtractionState) -> None:
    """Log a capture or fence left open at the end of a stream."""
    if state.kind == "active":
        logger.debug(
            "Discarding unterminated JSON capture (%d chars, depth %d)",
            len(state.buffer),
            state.depth,
        )
    elif state.kind in ("maybe_fence", "fence"):
        logger.debug("Stream ended inside a fenced region")
