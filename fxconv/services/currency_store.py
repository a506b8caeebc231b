"""Currency domain tables on top of the ephemeral record store."""

import logging
import time
from datetime import datetime
from typing import Iterable, Optional, Union

from fxconv.lib.config import (
    BASE_CURRENCY,
    HISTORY_TTL_HOURS,
    RATE_SNAPSHOT_TTL_HOURS,
    RATES_SOURCE,
    USAGE_TTL_HOURS,
)
from fxconv.lib.record_store import FieldType, RecordStore, TableStats
from fxconv.models import (
    ApiStats,
    ApiUsageRecord,
    ConversionRecord,
    CurrencyMetadata,
    RateSnapshot,
)

logger = logging.getLogger(__name__)

EXCHANGE_RATES_TABLE = "exchange_rates"
CONVERSION_HISTORY_TABLE = "conversion_history"
CURRENCY_METADATA_TABLE = "currency_metadata"
API_USAGE_TABLE = "api_usage"

TABLE_SCHEMAS = {
    EXCHANGE_RATES_TABLE: {
        "base_currency": FieldType.STRING,
        "rates": FieldType.OBJECT,
        "timestamp": FieldType.NUMBER,
        "source": FieldType.STRING,
    },
    CONVERSION_HISTORY_TABLE: {
        "from_currency": FieldType.STRING,
        "to_currency": FieldType.STRING,
        "amount": FieldType.NUMBER,
        "converted_amount": FieldType.NUMBER,
        "rate": FieldType.NUMBER,
        "timestamp": FieldType.NUMBER,
        "client_id": FieldType.STRING,
    },
    CURRENCY_METADATA_TABLE: {
        "code": FieldType.STRING,
        "name": FieldType.STRING,
        "symbol": FieldType.STRING,
        "country": FieldType.STRING,
        "is_active": FieldType.BOOLEAN,
    },
    API_USAGE_TABLE: {
        "endpoint": FieldType.STRING,
        "method": FieldType.STRING,
        "response_time": FieldType.NUMBER,
        "status_code": FieldType.NUMBER,
        "timestamp": FieldType.NUMBER,
        "client_id": FieldType.STRING,
    },
}


class CurrencyStore:
    """Typed access to rate snapshots, conversion history, metadata and usage.

    Retention: rate snapshots 1 hour, conversion and usage records 24 hours,
    currency metadata forever.
    """

    def __init__(self, db: Optional[RecordStore] = None) -> None:
        """
        Initialize store and create its tables.

        Args:
            db: Record store to build on (default: a fresh one)
        """
        self._db = db or RecordStore()
        existing = set(self._db.list_tables())
        for name, schema in TABLE_SCHEMAS.items():
            if name not in existing:
                self._db.create_table(name, schema)

    @property
    def db(self) -> RecordStore:
        """Underlying record store."""
        return self._db

    # Exchange rates

    def save_exchange_rates(
        self,
        snapshot: Union[RateSnapshot, str],
        rates: Optional[dict[str, float]] = None,
        source: str = RATES_SOURCE,
    ) -> str:
        """
        Store a rate snapshot for one hour.

        Accepts either a RateSnapshot or a base currency plus rates mapping.
        """
        if not isinstance(snapshot, RateSnapshot):
            snapshot = RateSnapshot(
                base_currency=snapshot,
                rates=dict(rates or {}),
                timestamp=time.time(),
                source=source,
            )
        return self._db.insert(
            EXCHANGE_RATES_TABLE, snapshot.to_record(), ttl_hours=RATE_SNAPSHOT_TTL_HOURS
        )

    def get_latest_exchange_rates(
        self, base_currency: str = BASE_CURRENCY
    ) -> Optional[RateSnapshot]:
        """Most recent unexpired snapshot for a base currency."""
        records = self._db.find(
            EXCHANGE_RATES_TABLE,
            where={"base_currency": base_currency},
            order_by="timestamp",
            order_direction="DESC",
            limit=1,
        )
        return RateSnapshot.from_record(records[0].data) if records else None

    # Conversion history

    def log_conversion(
        self,
        from_currency: str,
        to_currency: str,
        amount: float,
        converted_amount: float,
        rate: float,
        client_id: str = "unknown",
        ttl_hours: float = HISTORY_TTL_HOURS,
    ) -> str:
        """Record a completed conversion."""
        record = ConversionRecord(
            from_currency=from_currency,
            to_currency=to_currency,
            amount=amount,
            converted_amount=converted_amount,
            rate=rate,
            timestamp=time.time(),
            client_id=client_id,
        )
        return self._db.insert(CONVERSION_HISTORY_TABLE, record.to_record(), ttl_hours=ttl_hours)

    def get_conversion_history(self, limit: int = 100) -> list[ConversionRecord]:
        """Most recent conversions first."""
        records = self._db.find(
            CONVERSION_HISTORY_TABLE, order_by="timestamp", order_direction="DESC", limit=limit
        )
        return [ConversionRecord.from_record(r.data) for r in records]

    # Currency metadata

    def save_currency_metadata(self, currencies: Iterable[CurrencyMetadata]) -> int:
        """
        Store currency metadata entries as active.

        Returns:
            Number of entries saved
        """
        saved = 0
        for currency in currencies:
            record = currency.to_record()
            record["is_active"] = True
            self._db.insert(CURRENCY_METADATA_TABLE, record)
            saved += 1
        logger.debug(f"Saved metadata for {saved} currencies")
        return saved

    def get_currency_metadata(self, code: str) -> Optional[CurrencyMetadata]:
        """Active metadata for a currency code."""
        records = self._db.find(
            CURRENCY_METADATA_TABLE, where={"code": code, "is_active": True}, limit=1
        )
        return CurrencyMetadata.from_record(records[0].data) if records else None

    def list_currency_metadata(self, active_only: bool = True) -> list[CurrencyMetadata]:
        """All metadata entries ordered by code."""
        records = self._db.find(
            CURRENCY_METADATA_TABLE,
            where={"is_active": True} if active_only else None,
            order_by="code",
        )
        return [CurrencyMetadata.from_record(r.data) for r in records]

    def set_currency_active(self, code: str, active: bool) -> bool:
        """
        Flip the active flag on every metadata entry for a code.

        Returns:
            True if at least one entry was updated
        """
        updated = False
        for record in self._db.find_by_index(CURRENCY_METADATA_TABLE, "code", code):
            if self._db.update(CURRENCY_METADATA_TABLE, record.id, {"is_active": active}):
                updated = True
        return updated

    # API usage

    def log_api_usage(
        self,
        endpoint: str,
        method: str,
        response_time: float,
        status_code: int,
        client_id: str = "unknown",
        ttl_hours: float = USAGE_TTL_HOURS,
    ) -> str:
        """Record telemetry for one handled request."""
        record = ApiUsageRecord(
            endpoint=endpoint,
            method=method,
            response_time=response_time,
            status_code=status_code,
            timestamp=time.time(),
            client_id=client_id,
        )
        return self._db.insert(API_USAGE_TABLE, record.to_record(), ttl_hours=ttl_hours)

    def get_api_stats(self, hours: float = 24) -> ApiStats:
        """
        Aggregate usage over the trailing ``hours``.

        Only records with timestamp > now - hours are counted. An empty window
        yields zero totals and a 0.0 mean.
        """
        since = time.time() - hours * 3600
        records = [
            ApiUsageRecord.from_record(r.data)
            for r in self._db.find(API_USAGE_TABLE, order_by="timestamp", order_direction="DESC")
            if r.data["timestamp"] > since
        ]

        stats = ApiStats(total_requests=len(records), period_hours=hours)
        if not records:
            return stats

        stats.average_response_time = round(
            sum(r.response_time for r in records) / len(records), 2
        )
        for record in records:
            code = record.status_code
            stats.status_codes[code] = stats.status_codes.get(code, 0) + 1
            stats.endpoints[record.endpoint] = stats.endpoints.get(record.endpoint, 0) + 1
            hour = datetime.fromtimestamp(record.timestamp).hour
            stats.hourly_breakdown[hour] = stats.hourly_breakdown.get(hour, 0) + 1

        return stats

    # Maintenance

    def cleanup(self) -> int:
        """Evict expired records from every table."""
        return self._db.cleanup_expired()

    def get_stats(self) -> list[TableStats]:
        """Per-table diagnostics."""
        return [self._db.get_stats(name) for name in self._db.list_tables()]
