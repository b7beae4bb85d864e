"""
Response models for the datasets API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DatasetRow(_ApiModel):
    """One row of a dataset."""

    name: Optional[str] = None
    values: Dict[str, str] = Field(description="Column values keyed by column name")
    ideal_output: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class DatasetListItem(_ApiModel):
    """Summary of a dataset returned by ``list``."""

    slug: str
    name: str
    columns: List[str] = Field(default_factory=list)


class Dataset(DatasetListItem):
    """A dataset with its rows."""

    rows: List[DatasetRow] = Field(default_factory=list)


class ListDatasetsResponse(_ApiModel):
    warning: Optional[str] = None
    datasets: List[DatasetListItem]


class GetDatasetResponse(_ApiModel):
    warning: Optional[str] = None
    dataset: Dataset


class CreateDatasetItemResponse(_ApiModel):
    warning: Optional[str] = None
    dataset_row: DatasetRow
