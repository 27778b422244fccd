"""
Configuration module for MarketLens.

All hyperparameters, window shapes and decision thresholds are defined here
using Python dataclasses for type safety and easy serialization.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List


@dataclass
class MarketLensConfig:
    """
    Main configuration for the MarketLens analysis engine.

    Defines the input window shapes of the three predictive models, their
    layer widths and learning rates, the training budget, and the empirical
    thresholds used to turn raw model outputs into categorical forecasts.
    """

    # ========== Trend Classifier ==========
    trend_sequence_length: int = 30
    """Number of OHLCV bars in a trend window"""

    trend_num_features: int = 5
    """Per-bar features: open/high/low/close relative to prev close, log volume"""

    trend_hidden_dims: List[int] = field(default_factory=lambda: [100, 50])
    """Hidden widths of the stacked recurrent layers"""

    trend_dropout: float = 0.2
    """Dropout applied after each recurrent layer"""

    trend_learning_rate: float = 1e-3
    """Adam learning rate for the trend classifier"""

    trend_label_threshold: float = 0.01
    """Next-bar close change above/below which a window is labelled up/down"""

    # ========== Turning-Point Autoencoder ==========
    anomaly_input_dim: int = 30
    """Number of normalized closing prices fed to the autoencoder"""

    anomaly_encoder_dims: List[int] = field(default_factory=lambda: [16, 8, 4, 2])
    """Encoder widths; the decoder mirrors them back to anomaly_input_dim"""

    anomaly_learning_rate: float = 1e-3
    """Adam learning rate for the autoencoder"""

    anomaly_threshold: float = 0.1
    """Mean squared reconstruction error above which a window is anomalous"""

    anomaly_confidence_scale: float = 5.0
    """Confidence = min(anomaly_score * scale, 1)"""

    turning_point_lookback: int = 5
    """Trailing bars used to tell a top from a bottom"""

    turning_point_change_threshold: float = 0.02
    """Trailing price change beyond which an anomaly is a top (+) or bottom (-)"""

    # ========== Liquidity Regime Classifier ==========
    regime_sequence_length: int = 60
    """Number of macro observations in a regime window"""

    regime_num_features: int = 10
    """Macro indicators per observation"""

    regime_hidden_dims: List[int] = field(default_factory=lambda: [128, 64, 32])
    """Dense widths after flattening the macro window"""

    regime_dropouts: List[float] = field(default_factory=lambda: [0.3, 0.3, 0.2])
    """Dropout after each dense layer"""

    regime_learning_rate: float = 5e-4
    """Adam learning rate for the regime classifier"""

    # ========== Training Parameters ==========
    num_epochs: int = 50
    """Number of training epochs per model"""

    batch_size: int = 32
    """Training batch size"""

    validation_split: float = 0.2
    """Trailing fraction of samples held out for validation"""

    shuffle: bool = True
    """Whether to shuffle training samples each epoch"""

    show_progress: bool = True
    """Whether to show tqdm progress bars during training"""

    metrics_log_file: str = ""
    """Optional JSONL file for per-epoch metrics (empty: log only)"""

    # ========== Analysis ==========
    warning_confidence: float = 0.7
    """Turning-point confidence above which the summary carries a warning"""

    max_workers: int = 3
    """Thread pool size for concurrent predictions"""

    # ========== Miscellaneous ==========
    seed: int = 42
    """Random seed for reproducibility"""

    device: str = "cpu"
    """Device for training and inference ('cuda' or 'cpu')"""

    def __post_init__(self):
        """Validate parameters"""
        assert len(self.regime_dropouts) == len(self.regime_hidden_dims), \
            "regime_dropouts length must match regime_hidden_dims"

        assert self.anomaly_encoder_dims and \
            all(a > b for a, b in zip([self.anomaly_input_dim] + self.anomaly_encoder_dims,
                                      self.anomaly_encoder_dims)), \
            "anomaly_encoder_dims must be strictly narrowing"

        assert 0.0 <= self.validation_split < 1.0, \
            "validation_split must be in [0, 1)"

        assert self.turning_point_lookback >= 2, \
            "turning_point_lookback must cover at least two bars"

        assert self.batch_size > 0 and self.num_epochs > 0, \
            "batch_size and num_epochs must be positive"

    @property
    def trend_window_shape(self) -> tuple:
        return (self.trend_sequence_length, self.trend_num_features)

    @property
    def regime_window_shape(self) -> tuple:
        return (self.regime_sequence_length, self.regime_num_features)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "MarketLensConfig":
        """Build a config from a dict, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known})
