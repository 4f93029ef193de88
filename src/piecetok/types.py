"""
Core types for tokenization.
"""

type TokenId = int
type Offsets = tuple[int, int]
type Vocab = dict[str, TokenId]
type InputSequence = str | bytes
type EncodeInput = InputSequence | tuple[InputSequence, InputSequence]
