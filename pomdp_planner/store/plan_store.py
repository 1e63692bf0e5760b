"""
Plan Store — durable home of plan sessions and search-tree nodes.

The tree lives here, not in memory: nodes are flat records keyed by id,
with session_id and parent_id as foreign keys, so a session can be resumed
by conversation id from any process.

Behavioral Contract:
- Nodes for a session are returned ordered by depth, then creation order.
- Children of a node are returned ordered by score (desc), then creation order.
- Lookup by conversation returns the most recently updated session.
- Failures propagate to the caller. There is no retry.

Prototype: SQLite through aiosqlite. Any object satisfying PlanStore may
replace it.
"""

from datetime import datetime
from typing import List, Optional, Protocol

import aiosqlite

from pomdp_planner.exceptions import PlanStoreError
from pomdp_planner.models.plan import PlanNode, PlanSession
from pomdp_planner.models.state import Tenant
from pomdp_planner.observability.logger import get_logger

log = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS tenants (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    record_json TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS plan_sessions (
    id              TEXT PRIMARY KEY,
    conversation_id TEXT,
    customer_id     TEXT NOT NULL,
    status          TEXT NOT NULL,
    expires_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    record_json     TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS plan_nodes (
    id          TEXT PRIMARY KEY,
    session_id  TEXT NOT NULL,
    parent_id   TEXT,
    depth       INTEGER NOT NULL,
    total_score REAL NOT NULL,
    status      TEXT NOT NULL,
    origin      TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    record_json TEXT NOT NULL,
    FOREIGN KEY (session_id) REFERENCES plan_sessions(id)
);

CREATE INDEX IF NOT EXISTS idx_plan_sessions_conversation ON plan_sessions(conversation_id);
CREATE INDEX IF NOT EXISTS idx_plan_nodes_session ON plan_nodes(session_id);
CREATE INDEX IF NOT EXISTS idx_plan_nodes_parent ON plan_nodes(parent_id);
"""


def _ts(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


class PlanStore(Protocol):
    """Operations the planner needs from its storage collaborator."""

    async def create_plan_session(self, session: PlanSession) -> PlanSession: ...

    async def get_plan_session(self, session_id: str) -> Optional[PlanSession]: ...

    async def get_session_by_conversation(
        self, conversation_id: str
    ) -> Optional[PlanSession]: ...

    async def update_plan_session(
        self, session_id: str, updates: dict
    ) -> Optional[PlanSession]: ...

    async def create_plan_node(self, node: PlanNode) -> PlanNode: ...

    async def get_plan_node(self, node_id: str) -> Optional[PlanNode]: ...

    async def get_nodes_by_session(self, session_id: str) -> List[PlanNode]: ...

    async def get_child_nodes(self, node_id: str) -> List[PlanNode]: ...

    async def update_plan_node(
        self, node_id: str, updates: dict
    ) -> Optional[PlanNode]: ...

    async def create_tenant(self, tenant: Tenant) -> Tenant: ...

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]: ...

    async def list_tenants(self) -> List[Tenant]: ...


class SQLitePlanStore:
    """
    Async SQLite plan store.

        store = SQLitePlanStore(":memory:")
        await store.init()
        ...
        await store.close()
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    async def init(self) -> None:
        """Open the connection and create tables if they don't exist."""
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(_SCHEMA)
        await self._db.commit()
        log.info("plan_store.initialized", db_path=self.db_path)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    def _require_db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise PlanStoreError(
                "SQLitePlanStore is not initialised (or has been closed). "
                "Call `await store.init()` before use."
            )
        return self._db

    # --- Sessions ---

    async def create_plan_session(self, session: PlanSession) -> PlanSession:
        db = self._require_db()
        await db.execute(
            """INSERT INTO plan_sessions
               (id, conversation_id, customer_id, status, expires_at,
                updated_at, record_json)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                session.id,
                session.conversation_id,
                session.customer_id,
                session.status.value,
                _ts(session.expires_at),
                _ts(session.updated_at),
                session.model_dump_json(),
            ),
        )
        await db.commit()
        return session

    async def get_plan_session(self, session_id: str) -> Optional[PlanSession]:
        db = self._require_db()
        cursor = await db.execute(
            "SELECT record_json FROM plan_sessions WHERE id = ?", (session_id,)
        )
        row = await cursor.fetchone()
        return PlanSession.model_validate_json(row["record_json"]) if row else None

    async def get_session_by_conversation(
        self, conversation_id: str
    ) -> Optional[PlanSession]:
        """Most recently updated session for a conversation."""
        db = self._require_db()
        cursor = await db.execute(
            """SELECT record_json FROM plan_sessions
               WHERE conversation_id = ?
               ORDER BY updated_at DESC, rowid DESC LIMIT 1""",
            (conversation_id,),
        )
        row = await cursor.fetchone()
        return PlanSession.model_validate_json(row["record_json"]) if row else None

    async def update_plan_session(
        self, session_id: str, updates: dict
    ) -> Optional[PlanSession]:
        """Apply field updates. Returns None if the session does not exist."""
        existing = await self.get_plan_session(session_id)
        if existing is None:
            return None
        data = existing.model_dump()
        data.update(updates)
        data["updated_at"] = updates.get("updated_at", datetime.utcnow())
        session = PlanSession.model_validate(data)

        db = self._require_db()
        await db.execute(
            """UPDATE plan_sessions SET
               status = ?, expires_at = ?, updated_at = ?, record_json = ?
               WHERE id = ?""",
            (
                session.status.value,
                _ts(session.expires_at),
                _ts(session.updated_at),
                session.model_dump_json(),
                session_id,
            ),
        )
        await db.commit()
        return session

    # --- Nodes ---

    async def create_plan_node(self, node: PlanNode) -> PlanNode:
        db = self._require_db()
        await db.execute(
            """INSERT INTO plan_nodes
               (id, session_id, parent_id, depth, total_score, status,
                origin, created_at, record_json)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                node.id,
                node.session_id,
                node.parent_id,
                node.depth,
                node.total_score,
                node.status.value,
                node.origin.value,
                _ts(node.created_at),
                node.model_dump_json(),
            ),
        )
        await db.commit()
        return node

    async def get_plan_node(self, node_id: str) -> Optional[PlanNode]:
        db = self._require_db()
        cursor = await db.execute(
            "SELECT record_json FROM plan_nodes WHERE id = ?", (node_id,)
        )
        row = await cursor.fetchone()
        return PlanNode.model_validate_json(row["record_json"]) if row else None

    async def get_nodes_by_session(self, session_id: str) -> List[PlanNode]:
        """All nodes of a session, by depth then creation order."""
        db = self._require_db()
        cursor = await db.execute(
            """SELECT record_json FROM plan_nodes WHERE session_id = ?
               ORDER BY depth ASC, rowid ASC""",
            (session_id,),
        )
        rows = await cursor.fetchall()
        return [PlanNode.model_validate_json(r["record_json"]) for r in rows]

    async def get_child_nodes(self, node_id: str) -> List[PlanNode]:
        """Direct children, best score first."""
        db = self._require_db()
        cursor = await db.execute(
            """SELECT record_json FROM plan_nodes WHERE parent_id = ?
               ORDER BY total_score DESC, rowid ASC""",
            (node_id,),
        )
        rows = await cursor.fetchall()
        return [PlanNode.model_validate_json(r["record_json"]) for r in rows]

    async def update_plan_node(
        self, node_id: str, updates: dict
    ) -> Optional[PlanNode]:
        """Apply field updates. Returns None if the node does not exist."""
        existing = await self.get_plan_node(node_id)
        if existing is None:
            return None
        data = existing.model_dump()
        data.update(updates)
        data["updated_at"] = datetime.utcnow()
        node = PlanNode.model_validate(data)

        db = self._require_db()
        await db.execute(
            """UPDATE plan_nodes SET
               total_score = ?, status = ?, record_json = ?
               WHERE id = ?""",
            (node.total_score, node.status.value, node.model_dump_json(), node_id),
        )
        await db.commit()
        return node

    # --- Tenants ---

    async def create_tenant(self, tenant: Tenant) -> Tenant:
        db = self._require_db()
        await db.execute(
            "INSERT INTO tenants (id, name, created_at, record_json) VALUES (?, ?, ?, ?)",
            (tenant.id, tenant.name, _ts(tenant.created_at), tenant.model_dump_json()),
        )
        await db.commit()
        return tenant

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        db = self._require_db()
        cursor = await db.execute(
            "SELECT record_json FROM tenants WHERE id = ?", (tenant_id,)
        )
        row = await cursor.fetchone()
        return Tenant.model_validate_json(row["record_json"]) if row else None

    async def list_tenants(self) -> List[Tenant]:
        db = self._require_db()
        cursor = await db.execute(
            "SELECT record_json FROM tenants ORDER BY rowid ASC"
        )
        rows = await cursor.fetchall()
        return [Tenant.model_validate_json(r["record_json"]) for r in rows]
