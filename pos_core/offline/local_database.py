# =============================================================================
# pos_core/offline/local_database.py
# Local SQLite key/value store for offline operation
# =============================================================================
"""
LocalStore - durable key/value storage on this device.

Always available, and the source of truth whenever no remote backend is
reachable. Values are JSON documents kept in a single SQLite table;
timestamps are stored as ISO strings and parsed back to datetimes on read.

Keys:
    charnoks_products          list of products
    charnoks_transactions      list of transactions, newest first
    charnoks_users             list of users (workers / owner)
    charnoks_demo_mode         "true" while running in local-only demo mode
    charnoks_active_database   BackendKind value chosen by the selector
    charnoks_sync_queue        pending writes awaiting replay
"""

from __future__ import annotations
import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union
import logging

from pos_core.errors.exceptions import FatalLocalError, ValidationError
from pos_core.models import (
    EntityType,
    Product,
    ProductDraft,
    SaleDraft,
    SaleItem,
    Transaction,
    TransactionDraft,
    build_transaction,
    is_local_id,
    make_local_id,
    transaction_from_dict,
)

logger = logging.getLogger(__name__)


class StoreKeys:
    PRODUCTS = "charnoks_products"
    TRANSACTIONS = "charnoks_transactions"
    USERS = "charnoks_users"
    DEMO_MODE = "charnoks_demo_mode"
    ACTIVE_DATABASE = "charnoks_active_database"
    SYNC_QUEUE = "charnoks_sync_queue"

    # Cleared when falling back to a clean demo
    DEMO_DATA = (PRODUCTS, TRANSACTIONS, USERS, DEMO_MODE)


DEMO_USERS = [
    {"id": "demo-worker", "email": "worker@demo.com", "role": "worker"},
    {"id": "demo-worker2", "email": "worker2@demo.com", "role": "worker"},
]


class LocalStore:
    """
    Local key/value database for offline data storage.

    Each thread gets its own SQLite connection; read-modify-write cycles on
    a key are serialized by a process-wide lock (last write wins per key).
    """

    DEFAULT_DB_PATH = Path(__file__).parent.parent.parent / "local_data" / "charnoks_pos.db"

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize local store.

        Args:
            db_path: Path to SQLite database file
            clock: Source of "now" for ids and timestamps
        """
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self._clock = clock
        self._ensure_directory()
        self._local = threading.local()
        self._write_lock = threading.RLock()
        self._initialized = False

    def _ensure_directory(self) -> None:
        """Ensure database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "connection") or self._local.connection is None:
            try:
                self._local.connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
            except sqlite3.Error as e:
                raise FatalLocalError(f"Cannot open local database: {e}", details={"path": str(self.db_path)})
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self) -> None:
        """Initialize database schema."""
        if self._initialized:
            return

        try:
            with self.transaction() as conn:
                conn.execute(self.SCHEMA)
        except sqlite3.Error as e:
            raise FatalLocalError(f"Cannot create local schema: {e}")

        self._initialized = True
        logger.info(f"Local store initialized at: {self.db_path}")

    # =========================================================================
    # RAW KEY/VALUE ACCESS
    # =========================================================================

    def get_json(self, key: str, default: Any = None) -> Any:
        """Read and decode a JSON value; ``default`` when the key is absent."""
        self.initialize()
        try:
            row = self._get_connection().execute(
                "SELECT value FROM kv_store WHERE key = ?", [key]
            ).fetchone()
        except sqlite3.Error as e:
            raise FatalLocalError(f"Local read failed: {e}", key=key)

        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            raise FatalLocalError(f"Corrupt local data: {e}", key=key)

    def set_json(self, key: str, value: Any) -> None:
        """Encode and store a JSON value."""
        self.initialize()
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise FatalLocalError(f"Value is not JSON serializable: {e}", key=key)

        try:
            with self.transaction() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                    [key, payload, self._clock().isoformat()],
                )
        except sqlite3.Error as e:
            raise FatalLocalError(f"Local write failed: {e}", key=key)

    def delete(self, key: str) -> None:
        self.initialize()
        try:
            with self.transaction() as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", [key])
        except sqlite3.Error as e:
            raise FatalLocalError(f"Local delete failed: {e}", key=key)

    def update_json(self, key: str, update: Callable[[Any], Any], default: Any = None) -> Any:
        """Read-modify-write a key under the write lock. Returns the new value."""
        with self._write_lock:
            value = update(self.get_json(key, default))
            self.set_json(key, value)
            return value

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.get_json(key)
        return default if value is None else value

    def set_setting(self, key: str, value: str) -> None:
        self.set_json(key, value)

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    def get_products(self) -> List[Product]:
        return self._decode_records(self.get_json(StoreKeys.PRODUCTS, []), Product.from_dict, StoreKeys.PRODUCTS)

    def save_products(self, products: Iterable[Product]) -> None:
        self.set_json(StoreKeys.PRODUCTS, [p.to_dict() for p in products])

    def add_product(self, draft: ProductDraft) -> Product:
        """Store a new product under a fresh local-space id."""
        now = self._clock()
        with self._write_lock:
            products = self.get_products()
            product_id = make_local_id(now, {p.id for p in products})
            product = Product.from_draft(draft, product_id, now)
            products.append(product)
            self.save_products(products)
        logger.debug(f"Stored product {product.id} locally")
        return product

    def upsert_product(self, product: Product) -> Product:
        """Insert or replace a product by id (used to cache remote records)."""
        with self._write_lock:
            products = [p for p in self.get_products() if p.id != product.id]
            products.append(product)
            self.save_products(products)
        return product

    def update_product(self, product_id: str, **changes) -> Optional[Product]:
        """Apply validated field changes; None when the product is unknown."""
        with self._write_lock:
            products = self.get_products()
            for index, product in enumerate(products):
                if product.id == product_id:
                    products[index] = product.with_updates(self._clock(), **changes)
                    self.save_products(products)
                    return products[index]
        return None

    def deactivate_product(self, product_id: str) -> Optional[Product]:
        """Soft delete: keeps the record so past sales still resolve it."""
        return self.update_product(product_id, is_active=False)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def get_transactions(self) -> List[Transaction]:
        return self._decode_records(
            self.get_json(StoreKeys.TRANSACTIONS, []), transaction_from_dict, StoreKeys.TRANSACTIONS
        )

    def save_transactions(self, transactions: Iterable[Transaction]) -> None:
        self.set_json(StoreKeys.TRANSACTIONS, [t.to_dict() for t in transactions])

    def add_transaction(self, draft: TransactionDraft) -> Transaction:
        """Store a new transaction under a fresh local-space id, newest first."""
        now = self._clock()
        with self._write_lock:
            transactions = self.get_transactions()
            transaction_id = make_local_id(now, {t.id for t in transactions})
            transaction = build_transaction(draft, transaction_id, now)
            transactions.insert(0, transaction)
            self.save_transactions(transactions)
        logger.debug(f"Stored {transaction.type.value} {transaction.id} locally")
        return transaction

    def upsert_transaction(self, transaction: Transaction) -> Transaction:
        with self._write_lock:
            transactions = [t for t in self.get_transactions() if t.id != transaction.id]
            transactions.insert(0, transaction)
            self.save_transactions(self._newest_first(transactions))
        return transaction

    # =========================================================================
    # GENERIC ENTITY ACCESS (used by the local backend and the facade)
    # =========================================================================

    def list(self, entity: EntityType) -> List[Any]:
        if entity is EntityType.PRODUCTS:
            return self.get_products()
        return self.get_transactions()

    def create(self, entity: EntityType, draft: Any) -> Any:
        if entity is EntityType.PRODUCTS:
            return self.add_product(draft)
        return self.add_transaction(draft)

    def cache(self, entity: EntityType, record: Any) -> Any:
        """Write-through a record that already has a remote id."""
        if entity is EntityType.PRODUCTS:
            return self.upsert_product(record)
        return self.upsert_transaction(record)

    def refresh_cache(self, entity: EntityType, records: List[Any]) -> List[Any]:
        """
        Replace cached remote records with a fresh remote listing.

        Local-origin records (ids starting with "local-") are kept: they
        have not reached a remote backend yet.

        Returns:
            The merged listing as now stored
        """
        with self._write_lock:
            local_only = [r for r in self.list(entity) if is_local_id(r.id)]
            merged = list(records) + local_only
            if entity is EntityType.PRODUCTS:
                self.save_products(merged)
            else:
                merged = self._newest_first(merged)
                self.save_transactions(merged)
            return merged

    def reconcile(self, entity: EntityType, local_id: str, record: Any) -> bool:
        """
        Swap a local-origin record for its remote-assigned counterpart.

        Returns:
            True if the local record was found and replaced
        """
        with self._write_lock:
            records = self.list(entity)
            found = False
            kept = []
            for existing in records:
                if existing.id == local_id:
                    found = True
                    continue
                if existing.id != record.id:
                    kept.append(existing)
            kept.append(record)
            if entity is EntityType.PRODUCTS:
                self.save_products(kept)
            else:
                self.save_transactions(self._newest_first(kept))
        return found

    # =========================================================================
    # USERS
    # =========================================================================

    def get_users(self) -> List[Dict[str, Any]]:
        """Stored users, or the demo workers when none are stored."""
        users = self.get_json(StoreKeys.USERS)
        if users is None:
            return [dict(u) for u in DEMO_USERS]
        return users

    def save_users(self, users: List[Dict[str, Any]]) -> None:
        self.set_json(StoreKeys.USERS, users)

    # =========================================================================
    # DEMO MODE
    # =========================================================================

    def is_demo_mode(self) -> bool:
        return self.get_json(StoreKeys.DEMO_MODE) == "true"

    def enable_demo_mode(self) -> None:
        """Flag local-only operation. Does not seed any data."""
        self.set_json(StoreKeys.DEMO_MODE, "true")

    def disable_demo_mode(self) -> None:
        """Clear the flag; cached data stays available as a fallback."""
        self.delete(StoreKeys.DEMO_MODE)

    def clear_demo_data(self) -> None:
        """Remove products, transactions, users and the demo flag."""
        with self._write_lock:
            for key in StoreKeys.DEMO_DATA:
                self.delete(key)
        logger.info("Cleared local demo data")

    def clear_all_local_data(self) -> None:
        """Demo data plus the remembered backend choice."""
        self.clear_demo_data()
        self.delete(StoreKeys.ACTIVE_DATABASE)
        logger.info("Cleared all local data")

    def seed_sample_data(self) -> None:
        """Write the sample catalog and three sample sales."""
        now = self._clock()
        products = [
            ("demo-1", "Coca Cola", 15, 100, "Beverages", "Classic Coca Cola 355ml"),
            ("demo-2", "Piattos", 25, 50, "Snacks", "Piattos Cheese Flavored Potato Crisps"),
            ("demo-3", "Bottled Water", 10, 200, "Beverages", "Pure Drinking Water 500ml"),
            ("demo-4", "Biscuits", 20, 75, "Snacks", "Assorted Cream Biscuits"),
            ("demo-5", "Instant Coffee", 30, 40, "Beverages", "3-in-1 Instant Coffee Mix"),
        ]
        self.save_products(
            Product.from_draft(
                ProductDraft(
                    name=name,
                    price=price,
                    stock=stock,
                    category=category,
                    description=description,
                    image_url="/api/placeholder/150/150",
                ),
                product_id,
                now,
            )
            for product_id, name, price, stock, category, description in products
        )

        sales = [
            (
                "demo-trans-1",
                [("demo-1", "Coca Cola", 2, 15), ("demo-2", "Piattos", 1, 25)],
                100, "demo-worker", "worker@demo.com", 30, True,
                "2 Coke and 1 Piattos, 100 pesos",
            ),
            (
                "demo-trans-2",
                [("demo-3", "Bottled Water", 3, 10)],
                50, "demo-worker", "worker@demo.com", 60, False, None,
            ),
            (
                "demo-trans-3",
                [("demo-4", "Biscuits", 1, 20), ("demo-5", "Instant Coffee", 2, 30)],
                100, "demo-worker2", "worker2@demo.com", 120, False, None,
            ),
        ]
        transactions = []
        for sale_id, items, paid, worker_id, email, minutes_ago, voice, voice_input in sales:
            draft = SaleDraft(
                items=[SaleItem(pid, pname, qty, price) for pid, pname, qty, price in items],
                amount_paid=paid,
                worker_id=worker_id,
                worker_email=email,
                is_voice_transaction=voice,
                voice_input=voice_input,
            )
            transactions.append(build_transaction(draft, sale_id, now - timedelta(minutes=minutes_ago)))
        self.save_transactions(transactions)
        logger.info("Seeded local sample data")

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _newest_first(transactions: List[Transaction]) -> List[Transaction]:
        return sorted(transactions, key=lambda t: t.timestamp, reverse=True)

    @staticmethod
    def _decode_records(raw: Any, decode: Callable[[Dict[str, Any]], Any], key: str) -> List[Any]:
        if not isinstance(raw, list):
            raise FatalLocalError("Local data is not a list", key=key)
        records = []
        for item in raw:
            try:
                records.append(decode(item))
            except (ValidationError, KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed record in {key}: {e}")
        return records

    def close(self) -> None:
        """Close this thread's database connection."""
        if hasattr(self._local, "connection") and self._local.connection:
            self._local.connection.close()
            self._local.connection = None
