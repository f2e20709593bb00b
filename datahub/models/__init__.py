from .base import Base
from .dataset import Dataset
from .api_key import ApiKey

__all__ = ["Base", "Dataset", "ApiKey"]
