import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ...domain.errors import DuplicateKey
from ...domain.identifiers import new_object_id
from ...domain.models import (
    DEFAULT_AVATAR,
    DEFAULT_PRODUCT_IMAGE,
    Comment,
    Product,
    ProductQuery,
    User,
    UserSummary,
)
from ...domain.ports.persistence import PersistenceGateway

_LIKE_ESCAPE = "ESCAPE '\\'"

_USER_PUBLIC_COLUMNS = (
    "id, name, email, avatar, role, is_active, is_email_verified, is_online, "
    "last_activity, last_login, created_at, updated_at"
)
_USER_SECRET_COLUMNS = (
    "password_hash, email_verification_otp, email_verification_otp_expires, "
    "password_reset_otp, password_reset_otp_expires"
)

_USER_MUTABLE_FIELDS = {
    "name",
    "email",
    "password_hash",
    "avatar",
    "role",
    "is_active",
    "is_email_verified",
    "is_online",
    "last_activity",
    "last_login",
    "email_verification_otp",
    "email_verification_otp_expires",
    "password_reset_otp",
    "password_reset_otp_expires",
}

_PRODUCT_ORDER = {
    "newest": "created_at DESC, rowid DESC",
    "oldest": "created_at ASC, rowid ASC",
    "price-low": "price ASC, created_at DESC",
    "price-high": "price DESC, created_at DESC",
}


class SQLitePersistence(PersistenceGateway):
    """SQLite-backed implementation of the persistence gateway.

    Records are stored one row per document; membership lists (interested
    users, likes, replies) live in ordered side tables so they round-trip in
    insertion order.
    """

    def __init__(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.path = path
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    avatar TEXT NOT NULL,
                    role TEXT NOT NULL DEFAULT 'user',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    is_email_verified INTEGER NOT NULL DEFAULT 0,
                    is_online INTEGER NOT NULL DEFAULT 0,
                    last_activity TEXT,
                    last_login TEXT,
                    email_verification_otp TEXT,
                    email_verification_otp_expires TEXT,
                    password_reset_otp TEXT,
                    password_reset_otp_expires TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_created_at
                    ON users(created_at DESC);
                CREATE INDEX IF NOT EXISTS idx_users_presence
                    ON users(is_online, last_activity);

                CREATE TABLE IF NOT EXISTS products (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL,
                    price REAL NOT NULL CHECK (price >= 0),
                    image TEXT NOT NULL,
                    category TEXT NOT NULL,
                    estimated_purchase_date TEXT NOT NULL,
                    created_by TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'active',
                    min_quantity INTEGER NOT NULL DEFAULT 2,
                    max_quantity INTEGER NOT NULL DEFAULT 100,
                    current_quantity INTEGER NOT NULL DEFAULT 0,
                    tags TEXT NOT NULL DEFAULT '[]',
                    location TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_products_created_by
                    ON products(created_by, created_at DESC);
                CREATE INDEX IF NOT EXISTS idx_products_category
                    ON products(category, created_at DESC);
                CREATE INDEX IF NOT EXISTS idx_products_status
                    ON products(status, created_at DESC);
                CREATE INDEX IF NOT EXISTS idx_products_purchase_date
                    ON products(estimated_purchase_date);

                CREATE TABLE IF NOT EXISTS product_interests (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    product_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    UNIQUE(product_id, user_id),
                    FOREIGN KEY(product_id) REFERENCES products(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_product_interests_user
                    ON product_interests(user_id);

                CREATE TABLE IF NOT EXISTS comments (
                    id TEXT PRIMARY KEY,
                    text TEXT NOT NULL,
                    product_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    parent_comment TEXT,
                    is_edited INTEGER NOT NULL DEFAULT 0,
                    edited_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_comments_product
                    ON comments(product_id, created_at DESC);
                CREATE INDEX IF NOT EXISTS idx_comments_user
                    ON comments(user_id, created_at DESC);
                CREATE INDEX IF NOT EXISTS idx_comments_parent
                    ON comments(parent_comment, created_at ASC);

                CREATE TABLE IF NOT EXISTS comment_replies (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    parent_id TEXT NOT NULL,
                    reply_id TEXT NOT NULL,
                    UNIQUE(parent_id, reply_id),
                    FOREIGN KEY(parent_id) REFERENCES comments(id) ON DELETE CASCADE,
                    FOREIGN KEY(reply_id) REFERENCES comments(id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS comment_likes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    comment_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    UNIQUE(comment_id, user_id),
                    FOREIGN KEY(comment_id) REFERENCES comments(id) ON DELETE CASCADE
                );
                """
            )

    def close(self) -> None:
        self._conn.close()

    def collection_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        with self._lock:
            for table in ("users", "products", "comments"):
                cur = self._conn.execute(f"SELECT COUNT(*) FROM {table}")
                counts[table] = cur.fetchone()[0]
        return counts

    def purge_all(self) -> None:
        """Remove every document; used by the development seeder."""
        with self._lock, self._conn:
            for table in ("comments", "products", "users"):
                self._conn.execute(f"DELETE FROM {table}")

    # UserRepository API ----------------------------------------------------
    def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        *,
        role: str = "user",
        is_email_verified: bool = False,
        email_verification_otp: Optional[str] = None,
        email_verification_otp_expires: Optional[datetime] = None,
    ) -> User:
        user_id = new_object_id()
        now = self._now()
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    """
                    INSERT INTO users (
                        id, name, email, password_hash, avatar, role, is_active,
                        is_email_verified, is_online, last_activity,
                        email_verification_otp, email_verification_otp_expires,
                        created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, 1, ?, 0, ?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        name,
                        email.lower(),
                        password_hash,
                        DEFAULT_AVATAR,
                        role,
                        int(is_email_verified),
                        now,
                        email_verification_otp,
                        self._format(email_verification_otp_expires),
                        now,
                        now,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise self._duplicate_key(exc) from exc
        user = self.get_user_by_id(user_id)
        if not user:
            raise RuntimeError("Failed to persist user.")
        return user

    def get_user_by_id(self, user_id: str, *, include_secrets: bool = False) -> Optional[User]:
        return self._fetch_user("id = ?", (user_id,), include_secrets)

    def get_user_by_email(self, email: str, *, include_secrets: bool = False) -> Optional[User]:
        return self._fetch_user("email = ?", (email.lower(),), include_secrets)

    def update_user(self, user_id: str, changes: Mapping[str, Any]) -> Optional[User]:
        unknown = set(changes) - _USER_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported user fields: {', '.join(sorted(unknown))}")
        updates: List[str] = []
        params: List[Any] = []
        for column, value in changes.items():
            if column == "email" and value is not None:
                value = value.lower()
            updates.append(f"{column} = ?")
            params.append(self._to_column(value))
        if updates:
            updates.append("updated_at = ?")
            params.append(self._now())
            params.append(user_id)
            statement = f"UPDATE users SET {', '.join(updates)} WHERE id = ?"
            try:
                with self._lock, self._conn:
                    self._conn.execute(statement, params)
            except sqlite3.IntegrityError as exc:
                raise self._duplicate_key(exc) from exc
        return self.get_user_by_id(user_id)

    def delete_user(self, user_id: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM users WHERE id = ?", (user_id,))

    def get_user_summaries(self, user_ids: Iterable[str]) -> Dict[str, UserSummary]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        with self._lock:
            cur = self._conn.execute(
                f"SELECT id, name, email, avatar FROM users WHERE id IN ({placeholders})",
                ids,
            )
            rows = cur.fetchall()
        return {
            row["id"]: UserSummary(id=row["id"], name=row["name"], email=row["email"], avatar=row["avatar"])
            for row in rows
        }

    def list_users(self, search: Optional[str], limit: int, offset: int) -> List[User]:
        where, params = self._user_filter(search)
        query = (
            f"SELECT {_USER_PUBLIC_COLUMNS} FROM users WHERE {where} "
            "ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
        )
        with self._lock:
            cur = self._conn.execute(query, [*params, limit, offset])
            rows = cur.fetchall()
        return [self._row_to_user(row) for row in rows]

    def count_users(self, search: Optional[str] = None) -> int:
        where, params = self._user_filter(search)
        with self._lock:
            cur = self._conn.execute(f"SELECT COUNT(*) FROM users WHERE {where}", params)
            return cur.fetchone()[0]

    def list_online_users(self, limit: int) -> List[User]:
        with self._lock:
            cur = self._conn.execute(
                f"""
                SELECT {_USER_PUBLIC_COLUMNS} FROM users
                WHERE is_online = 1 AND is_active = 1
                ORDER BY last_activity DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = cur.fetchall()
        return [self._row_to_user(row) for row in rows]

    def touch_user_activity(self, user_id: str, now: datetime) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE users SET last_activity = ?, is_online = 1 WHERE id = ?",
                (self._format(now), user_id),
            )

    def mark_inactive_users_offline(self, cutoff: datetime) -> int:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "UPDATE users SET is_online = 0 WHERE is_online = 1 AND last_activity < ?",
                (self._format(cutoff),),
            )
            return cur.rowcount

    # ProductRepository API -------------------------------------------------
    def create_product(
        self,
        *,
        title: str,
        description: str,
        price: float,
        category: str,
        estimated_purchase_date: datetime,
        created_by: str,
        image: Optional[str] = None,
        min_quantity: int = 2,
        max_quantity: int = 100,
        tags: Optional[List[str]] = None,
        location: Optional[str] = None,
    ) -> Product:
        product_id = new_object_id()
        now = self._now()
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO products (
                    id, title, description, price, image, category,
                    estimated_purchase_date, created_by, status, min_quantity,
                    max_quantity, current_quantity, tags, location, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'active', ?, ?, 0, ?, ?, ?, ?)
                """,
                (
                    product_id,
                    title,
                    description,
                    price,
                    image or DEFAULT_PRODUCT_IMAGE,
                    category,
                    self._format(estimated_purchase_date),
                    created_by,
                    min_quantity,
                    max_quantity,
                    json.dumps(tags or [], ensure_ascii=False),
                    location,
                    now,
                    now,
                ),
            )
        product = self.get_product(product_id)
        if not product:
            raise RuntimeError("Failed to persist product.")
        return product

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._lock:
            cur = self._conn.execute("SELECT * FROM products WHERE id = ?", (product_id,))
            row = cur.fetchone()
            if not row:
                return None
            interests = self._load_interests_locked([row["id"]])
        return self._row_to_product(row, interests.get(row["id"], []))

    def save_product(self, product: Product) -> Product:
        """Write the whole product back, recomputing ``current_quantity``."""
        interested = list(dict.fromkeys(product.interested_users))
        product.interested_users = interested
        product.current_quantity = len(interested)
        with self._lock, self._conn:
            self._conn.execute(
                """
                UPDATE products SET
                    title = ?, description = ?, price = ?, image = ?, category = ?,
                    estimated_purchase_date = ?, status = ?, min_quantity = ?,
                    max_quantity = ?, current_quantity = ?, tags = ?, location = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    product.title,
                    product.description,
                    product.price,
                    product.image,
                    product.category,
                    self._format(product.estimated_purchase_date),
                    product.status,
                    product.min_quantity,
                    product.max_quantity,
                    product.current_quantity,
                    json.dumps(product.tags, ensure_ascii=False),
                    product.location,
                    self._now(),
                    product.id,
                ),
            )
            self._conn.execute("DELETE FROM product_interests WHERE product_id = ?", (product.id,))
            self._conn.executemany(
                "INSERT INTO product_interests (product_id, user_id) VALUES (?, ?)",
                [(product.id, user_id) for user_id in interested],
            )
        saved = self.get_product(product.id)
        if not saved:
            raise RuntimeError(f"Product {product.id} disappeared while saving.")
        return saved

    def delete_product(self, product_id: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM products WHERE id = ?", (product_id,))

    def find_products(self, query: ProductQuery, limit: int, offset: int) -> List[Product]:
        where, params = self._product_filter(query)
        order = _PRODUCT_ORDER.get(query.sort, _PRODUCT_ORDER["newest"])
        statement = f"SELECT * FROM products WHERE {where} ORDER BY {order} LIMIT ? OFFSET ?"
        with self._lock:
            cur = self._conn.execute(statement, [*params, limit, offset])
            rows = cur.fetchall()
            interests = self._load_interests_locked([row["id"] for row in rows])
        return [self._row_to_product(row, interests.get(row["id"], [])) for row in rows]

    def count_products(self, query: ProductQuery) -> int:
        where, params = self._product_filter(query)
        with self._lock:
            cur = self._conn.execute(f"SELECT COUNT(*) FROM products WHERE {where}", params)
            return cur.fetchone()[0]

    # CommentRepository API -------------------------------------------------
    def create_comment(
        self,
        text: str,
        product_id: str,
        user_id: str,
        parent_comment: Optional[str] = None,
    ) -> Comment:
        comment_id = new_object_id()
        now = self._now()
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT INTO comments (
                    id, text, product_id, user_id, parent_comment, is_edited,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (comment_id, text, product_id, user_id, parent_comment, now, now),
            )
        comment = self.get_comment(comment_id)
        if not comment:
            raise RuntimeError("Failed to persist comment.")
        return comment

    def get_comment(self, comment_id: str) -> Optional[Comment]:
        comments = self.get_comments([comment_id])
        return comments[0] if comments else None

    def get_comments(self, comment_ids: Iterable[str]) -> List[Comment]:
        ids = list(dict.fromkeys(comment_ids))
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        with self._lock:
            cur = self._conn.execute(f"SELECT * FROM comments WHERE id IN ({placeholders})", ids)
            rows = {row["id"]: row for row in cur.fetchall()}
            likes, replies = self._load_comment_lists_locked(list(rows))
        return [
            self._row_to_comment(rows[comment_id], likes.get(comment_id, []), replies.get(comment_id, []))
            for comment_id in ids
            if comment_id in rows
        ]

    def save_comment(self, comment: Comment) -> Comment:
        """Write text, edit markers and likes back; replies only change via push/pull."""
        likes = list(dict.fromkeys(comment.likes))
        with self._lock, self._conn:
            self._conn.execute(
                """
                UPDATE comments SET text = ?, is_edited = ?, edited_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    comment.text,
                    int(comment.is_edited),
                    self._format(comment.edited_at),
                    self._now(),
                    comment.id,
                ),
            )
            self._conn.execute("DELETE FROM comment_likes WHERE comment_id = ?", (comment.id,))
            self._conn.executemany(
                "INSERT INTO comment_likes (comment_id, user_id) VALUES (?, ?)",
                [(comment.id, user_id) for user_id in likes],
            )
        saved = self.get_comment(comment.id)
        if not saved:
            raise RuntimeError(f"Comment {comment.id} disappeared while saving.")
        return saved

    def push_reply(self, parent_id: str, reply_id: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR IGNORE INTO comment_replies (parent_id, reply_id) VALUES (?, ?)",
                (parent_id, reply_id),
            )

    def pull_reply(self, parent_id: str, reply_id: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "DELETE FROM comment_replies WHERE parent_id = ? AND reply_id = ?",
                (parent_id, reply_id),
            )

    def delete_comment(self, comment_id: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM comments WHERE id = ?", (comment_id,))

    def delete_replies(self, parent_id: str) -> int:
        with self._lock, self._conn:
            cur = self._conn.execute("DELETE FROM comments WHERE parent_comment = ?", (parent_id,))
            return cur.rowcount

    def delete_comments_for_product(self, product_id: str) -> int:
        with self._lock, self._conn:
            cur = self._conn.execute("DELETE FROM comments WHERE product_id = ?", (product_id,))
            return cur.rowcount

    def find_comments(
        self,
        *,
        product_id: Optional[str] = None,
        user_id: Optional[str] = None,
        top_level_only: bool = False,
        limit: int,
        offset: int,
    ) -> List[Comment]:
        where, params = self._comment_filter(product_id, user_id, top_level_only)
        statement = (
            f"SELECT * FROM comments WHERE {where} "
            "ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
        )
        with self._lock:
            cur = self._conn.execute(statement, [*params, limit, offset])
            rows = cur.fetchall()
            likes, replies = self._load_comment_lists_locked([row["id"] for row in rows])
        return [
            self._row_to_comment(row, likes.get(row["id"], []), replies.get(row["id"], []))
            for row in rows
        ]

    def count_comments(
        self,
        *,
        product_id: Optional[str] = None,
        user_id: Optional[str] = None,
        top_level_only: bool = False,
    ) -> int:
        where, params = self._comment_filter(product_id, user_id, top_level_only)
        with self._lock:
            cur = self._conn.execute(f"SELECT COUNT(*) FROM comments WHERE {where}", params)
            return cur.fetchone()[0]

    # Query builders ---------------------------------------------------------
    @staticmethod
    def _escape_like(value: str) -> str:
        return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

    def _user_filter(self, search: Optional[str]) -> Tuple[str, List[Any]]:
        clauses = ["is_active = 1"]
        params: List[Any] = []
        if search:
            pattern = f"%{self._escape_like(search)}%"
            clauses.append(f"(name LIKE ? {_LIKE_ESCAPE} OR email LIKE ? {_LIKE_ESCAPE})")
            params.extend([pattern, pattern])
        return " AND ".join(clauses), params

    def _product_filter(self, query: ProductQuery) -> Tuple[str, List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        if query.status:
            clauses.append("status = ?")
            params.append(query.status)
        if query.category:
            clauses.append("category = ?")
            params.append(query.category)
        if query.created_by:
            clauses.append("created_by = ?")
            params.append(query.created_by)
        if query.interested_user:
            clauses.append(
                "EXISTS (SELECT 1 FROM product_interests pi "
                "WHERE pi.product_id = products.id AND pi.user_id = ?)"
            )
            params.append(query.interested_user)
        if query.search:
            pattern = f"%{self._escape_like(query.search)}%"
            clauses.append(
                f"(title LIKE ? {_LIKE_ESCAPE} OR description LIKE ? {_LIKE_ESCAPE} "
                f"OR EXISTS (SELECT 1 FROM json_each(products.tags) AS tag "
                f"WHERE tag.value LIKE ? {_LIKE_ESCAPE}))"
            )
            params.extend([pattern, pattern, pattern])
        return (" AND ".join(clauses) or "1 = 1"), params

    @staticmethod
    def _comment_filter(
        product_id: Optional[str],
        user_id: Optional[str],
        top_level_only: bool,
    ) -> Tuple[str, List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        if product_id:
            clauses.append("product_id = ?")
            params.append(product_id)
        if user_id:
            clauses.append("user_id = ?")
            params.append(user_id)
        if top_level_only:
            clauses.append("parent_comment IS NULL")
        return (" AND ".join(clauses) or "1 = 1"), params

    # Helpers ----------------------------------------------------------------
    def _fetch_user(self, where: str, params: Sequence[Any], include_secrets: bool) -> Optional[User]:
        columns = _USER_PUBLIC_COLUMNS
        if include_secrets:
            columns = f"{columns}, {_USER_SECRET_COLUMNS}"
        with self._lock:
            cur = self._conn.execute(f"SELECT {columns} FROM users WHERE {where}", params)
            row = cur.fetchone()
        return self._row_to_user(row, include_secrets) if row else None

    def _load_interests_locked(self, product_ids: List[str]) -> Dict[str, List[str]]:
        result: Dict[str, List[str]] = {}
        if not product_ids:
            return result
        placeholders = ", ".join("?" for _ in product_ids)
        cur = self._conn.execute(
            f"SELECT product_id, user_id FROM product_interests "
            f"WHERE product_id IN ({placeholders}) ORDER BY id ASC",
            product_ids,
        )
        for row in cur.fetchall():
            result.setdefault(row["product_id"], []).append(row["user_id"])
        return result

    def _load_comment_lists_locked(
        self, comment_ids: List[str]
    ) -> Tuple[Dict[str, List[str]], Dict[str, List[str]]]:
        likes: Dict[str, List[str]] = {}
        replies: Dict[str, List[str]] = {}
        if not comment_ids:
            return likes, replies
        placeholders = ", ".join("?" for _ in comment_ids)
        cur = self._conn.execute(
            f"SELECT comment_id, user_id FROM comment_likes "
            f"WHERE comment_id IN ({placeholders}) ORDER BY id ASC",
            comment_ids,
        )
        for row in cur.fetchall():
            likes.setdefault(row["comment_id"], []).append(row["user_id"])
        cur = self._conn.execute(
            f"SELECT parent_id, reply_id FROM comment_replies "
            f"WHERE parent_id IN ({placeholders}) ORDER BY id ASC",
            comment_ids,
        )
        for row in cur.fetchall():
            replies.setdefault(row["parent_id"], []).append(row["reply_id"])
        return likes, replies

    @staticmethod
    def _duplicate_key(exc: sqlite3.IntegrityError) -> Exception:
        if "users.email" in str(exc):
            return DuplicateKey("User already exists with this email", field="email")
        return exc

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat(timespec="microseconds")

    @staticmethod
    def _format(value: Optional[datetime]) -> Optional[str]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="microseconds")

    def _to_column(self, value: Any) -> Any:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, datetime):
            return self._format(value)
        return value

    @staticmethod
    def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        result = datetime.fromisoformat(value)
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    def _row_to_user(self, row: sqlite3.Row, include_secrets: bool = False) -> User:
        user = User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            avatar=row["avatar"],
            role=row["role"],
            is_active=bool(row["is_active"]),
            is_email_verified=bool(row["is_email_verified"]),
            is_online=bool(row["is_online"]),
            last_activity=self._parse_datetime(row["last_activity"]),
            last_login=self._parse_datetime(row["last_login"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )
        if include_secrets:
            user.password_hash = row["password_hash"]
            user.email_verification_otp = row["email_verification_otp"]
            user.email_verification_otp_expires = self._parse_datetime(row["email_verification_otp_expires"])
            user.password_reset_otp = row["password_reset_otp"]
            user.password_reset_otp_expires = self._parse_datetime(row["password_reset_otp_expires"])
        return user

    def _row_to_product(self, row: sqlite3.Row, interested: List[str]) -> Product:
        return Product(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            price=row["price"],
            image=row["image"],
            category=row["category"],
            estimated_purchase_date=self._parse_datetime(row["estimated_purchase_date"]),
            created_by=row["created_by"],
            interested_users=interested,
            status=row["status"],
            min_quantity=row["min_quantity"],
            max_quantity=row["max_quantity"],
            current_quantity=row["current_quantity"],
            tags=json.loads(row["tags"]),
            location=row["location"],
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )

    def _row_to_comment(self, row: sqlite3.Row, likes: List[str], replies: List[str]) -> Comment:
        return Comment(
            id=row["id"],
            text=row["text"],
            product_id=row["product_id"],
            user_id=row["user_id"],
            parent_comment=row["parent_comment"],
            replies=replies,
            likes=likes,
            is_edited=bool(row["is_edited"]),
            edited_at=self._parse_datetime(row["edited_at"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )
