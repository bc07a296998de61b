"""Configuration for fieldsense."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import os
import yaml

from .errors import ConfigurationError


@dataclass
class ClassifierConfig:
    """Prototype classifier settings."""
    hard_accept_threshold: float = 0.35  # classify_soft returns None below this
    ngram_size: int = 3
    learned_match_threshold: float = 0.6  # a single learned entry this close wins outright


@dataclass
class LearningConfig:
    """Continuous learning store settings."""
    max_entries: int = 500
    storage_key: str = "fieldsense_learned_classifications"


@dataclass
class OllamaConfig:
    """Ollama generative model settings."""
    url: str = "http://localhost:11434"
    model: str = "phi3:mini"


@dataclass
class ModelConfig:
    """Generative model fallback settings."""
    provider: str = "ollama"  # "ollama" | "none"
    timeout: float = 10.0  # Seconds before an in-flight prompt is cancelled
    cooldown: float = 60.0  # Seconds before re-probing an unavailable model
    temperature: float = 0.1
    output_language: str = "en"
    ollama: OllamaConfig = field(default_factory=OllamaConfig)


@dataclass
class Config:
    """Main configuration."""
    # Paths
    data_dir: Path = field(default_factory=lambda: Path.home() / ".fieldsense")
    db_path: Path = field(default=None)

    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    learning: LearningConfig = field(default_factory=LearningConfig)
    model: ModelConfig = field(default_factory=ModelConfig)

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        if self.db_path is None:
            self.db_path = self.data_dir / "fieldsense.db"

        # Ensure data dir exists
        self.data_dir.mkdir(parents=True, exist_ok=True)

        url = os.environ.get("FIELDSENSE_OLLAMA_URL")
        if url:
            self.model.ollama.url = url

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load config from file or use defaults."""
        if path is None:
            path = Path.home() / ".fieldsense" / "config.yaml"

        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}
                return cls._from_dict(data)

        return cls()

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create config from dict."""
        if not isinstance(data, dict):
            raise ConfigurationError("Config file must contain a mapping")

        config = cls(data_dir=Path(data["data_dir"])) if "data_dir" in data else cls()

        if "classifier" in data:
            c = data["classifier"]
            threshold = float(c.get("hard_accept_threshold", config.classifier.hard_accept_threshold))
            if not 0.0 <= threshold <= 1.0:
                raise ConfigurationError(f"hard_accept_threshold out of range: {threshold}")
            config.classifier.hard_accept_threshold = threshold
            config.classifier.ngram_size = int(c.get("ngram_size", config.classifier.ngram_size))
            learned = float(c.get("learned_match_threshold", config.classifier.learned_match_threshold))
            if not 0.0 <= learned <= 1.0:
                raise ConfigurationError(f"learned_match_threshold out of range: {learned}")
            config.classifier.learned_match_threshold = learned

        if "learning" in data:
            l = data["learning"]
            max_entries = int(l.get("max_entries", config.learning.max_entries))
            if max_entries < 1:
                raise ConfigurationError(f"max_entries must be positive: {max_entries}")
            config.learning.max_entries = max_entries
            config.learning.storage_key = l.get("storage_key", config.learning.storage_key)

        if "model" in data:
            m = data["model"]
            provider = m.get("provider", "ollama")
            if provider not in ("ollama", "none"):
                raise ConfigurationError(f"Unknown model provider: {provider}")
            config.model.provider = provider
            config.model.timeout = float(m.get("timeout", config.model.timeout))
            config.model.cooldown = float(m.get("cooldown", config.model.cooldown))
            config.model.temperature = float(m.get("temperature", config.model.temperature))
            config.model.output_language = m.get("output_language", config.model.output_language)

            if "ollama" in m:
                config.model.ollama.url = os.environ.get(
                    "FIELDSENSE_OLLAMA_URL",
                    m["ollama"].get("url", "http://localhost:11434"),
                )
                config.model.ollama.model = m["ollama"].get("model", "phi3:mini")

        return config

    def save(self, path: Optional[Path] = None):
        """Save config to file."""
        if path is None:
            path = self.data_dir / "config.yaml"

        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "data_dir": str(self.data_dir),
            "classifier": {
                "hard_accept_threshold": self.classifier.hard_accept_threshold,
                "ngram_size": self.classifier.ngram_size,
                "learned_match_threshold": self.classifier.learned_match_threshold,
            },
            "learning": {
                "max_entries": self.learning.max_entries,
                "storage_key": self.learning.storage_key,
            },
            "model": {
                "provider": self.model.provider,
                "timeout": self.model.timeout,
                "cooldown": self.model.cooldown,
                "temperature": self.model.temperature,
                "output_language": self.model.output_language,
                "ollama": {
                    "url": self.model.ollama.url,
                    "model": self.model.ollama.model,
                },
            },
        }

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get global config instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config):
    """Set global config instance."""
    global _config
    _config = config
