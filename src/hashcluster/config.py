from dataclasses import dataclass


@dataclass
class Settings:
    hash_size: int = 8
    algorithm: str = "perceptual"
    uncertainty_threshold: float = 0.5
    near_duplicate_threshold: float = 0.15


DEFAULT_SETTINGS = Settings()
