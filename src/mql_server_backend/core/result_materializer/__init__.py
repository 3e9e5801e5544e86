"""
Result materialization package.

Modules:
    types: TabularOrient, TabularPage and MaterializationResult
    series: Frame to series conversion
    cursor: Opaque pagination cursors
    tabular: Paged JSON rendering
    materializer: ResultMaterializer facade
"""

from .types import MaterializationResult, TabularOrient, TabularPage
from .series import to_series
from .cursor import decode_cursor, encode_cursor
from .tabular import decode_page_data, encode_frame, to_tabular

__all__ = [
    "MaterializationResult",
    "TabularOrient",
    "TabularPage",
    "to_series",
    "decode_cursor",
    "encode_cursor",
    "decode_page_data",
    "encode_frame",
    "to_tabular",
]
