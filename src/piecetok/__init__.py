"""PieceTok: WordPiece subword tokenization library."""

from . import decoders, models, normalizers, pre_tokenizers, processors
from ._progress import disable_progress, enable_progress
from .alignment import Alignment, NormalizedString
from .decoders import WordPieceDecoder
from .encoding import Encoding, PaddingParams, TruncationParams
from .errors import (
    InvalidEncodingError,
    MissingSpecialTokenError,
    ModelLoadError,
    PatternError,
    PieceTokError,
    SpecialTokenError,
    StrategyError,
    TokenizationError,
    TrainingError,
    VocabularyError,
)
from .factory import (
    bert_tokenizer,
    from_pretrained,
    get_normalizer,
    get_pre_tokenizer,
    list_normalizers,
    list_pre_tokenizers,
)
from .models import WordPiece
from .normalizers import BertNormalizer
from .parallel import ParallelMode, list_parallel_modes
from .pattern import SplitPattern, get_pattern, list_patterns
from .pre_tokenizers import BertPreTokenizer, PreToken
from .processors import BertProcessing
from .strategy import (
    AllowAllStrategy,
    AllowCustomStrategy,
    AllowNoneRaiseStrategy,
    AllowNoneStrategy,
    SpecialTokenStrategy,
    get_strategy,
    list_strategies,
)
from .tokenizer import Tokenizer
from .trainer import TrainerState, TrainingResult, WordPieceTrainer
from .vocab import Vocabulary

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("piecetok")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "decoders",
    "models",
    "normalizers",
    "pre_tokenizers",
    "processors",
    "Tokenizer",
    "Encoding",
    "TruncationParams",
    "PaddingParams",
    "Alignment",
    "NormalizedString",
    "Vocabulary",
    "WordPiece",
    "BertNormalizer",
    "BertPreTokenizer",
    "PreToken",
    "BertProcessing",
    "WordPieceDecoder",
    "WordPieceTrainer",
    "TrainerState",
    "TrainingResult",
    "SplitPattern",
    "ParallelMode",
    "SpecialTokenStrategy",
    "AllowAllStrategy",
    "AllowNoneStrategy",
    "AllowNoneRaiseStrategy",
    "AllowCustomStrategy",
    "PieceTokError",
    "InvalidEncodingError",
    "MissingSpecialTokenError",
    "SpecialTokenError",
    "TokenizationError",
    "VocabularyError",
    "TrainingError",
    "ModelLoadError",
    "PatternError",
    "StrategyError",
    "bert_tokenizer",
    "from_pretrained",
    "get_normalizer",
    "get_pre_tokenizer",
    "get_strategy",
    "get_pattern",
    "list_normalizers",
    "list_pre_tokenizers",
    "list_patterns",
    "list_parallel_modes",
    "list_strategies",
    "enable_progress",
    "disable_progress",
]
