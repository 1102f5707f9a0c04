"""typed_spi - run typed SQL against the database engine this code lives in."""

from typed_spi.client import SpiClient
from typed_spi.config import EngineConfig
from typed_spi.datum import Datum, Decoded, DecodedKind
from typed_spi.duckdb_engine import DuckDBEngine
from typed_spi.engine import Column, Engine, EngineConnection, TupleTable
from typed_spi.errors import DecodeError, FrameError, HostAbort, SpiError, StatementError
from typed_spi.explain import Explain, PlanNode
from typed_spi.frames import ExecutionContext, ExecutionFrame, current_context, install, uninstall
from typed_spi.oids import BuiltinOid
from typed_spi.result import ResultSet, Row
from typed_spi.spi import Spi
from typed_spi.statement import Binding, Statement

__all__ = [
    # Main API
    "Spi",
    "SpiClient",
    "install",
    "uninstall",
    "current_context",
    # Types and values
    "BuiltinOid",
    "Binding",
    "Statement",
    "Datum",
    "Decoded",
    "DecodedKind",
    # Results
    "ResultSet",
    "Row",
    "Explain",
    "PlanNode",
    # Frames and engines
    "ExecutionContext",
    "ExecutionFrame",
    "Engine",
    "EngineConnection",
    "EngineConfig",
    "DuckDBEngine",
    "Column",
    "TupleTable",
    # Errors
    "SpiError",
    "StatementError",
    "DecodeError",
    "HostAbort",
    "FrameError",
]

__version__ = "0.1.0"
