"""
Datasets Module

Async access to datasets stored in Basalt.
"""

from .client import DatasetSDK
from .models import Dataset, DatasetListItem, DatasetRow

__all__ = ["DatasetSDK", "Dataset", "DatasetListItem", "DatasetRow"]
