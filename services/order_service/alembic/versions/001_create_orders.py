"""Alembic migration — create orders and idempotency_keys tables.

Raw SQL keeps the DDL identical to what operators read in the database.
"""

from alembic import op

# revision identifiers
revision = "001_create_orders"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── Orders table ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE IF NOT EXISTS orders (
            id           VARCHAR(36)     PRIMARY KEY,
            customer_id  VARCHAR(255)    NOT NULL,
            product_id   VARCHAR(255)    NOT NULL,
            quantity     INTEGER         NOT NULL CHECK (quantity > 0),
            total_price  NUMERIC(10, 2)  NOT NULL CHECK (total_price >= 0),
            status       VARCHAR(50)     NOT NULL DEFAULT 'created',
            order_time   TIMESTAMPTZ     NOT NULL DEFAULT now(),
            created_at   TIMESTAMPTZ     NOT NULL DEFAULT now(),
            updated_at   TIMESTAMPTZ     NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_orders_customer_id ON orders (customer_id);")
    op.execute("CREATE INDEX IF NOT EXISTS ix_orders_created_at  ON orders (created_at);")
    op.execute("CREATE INDEX IF NOT EXISTS ix_orders_order_time  ON orders (order_time);")

    # ── Idempotency keys ────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE IF NOT EXISTS idempotency_keys (
            endpoint_name   VARCHAR(255)  NOT NULL,
            endpoint_scheme VARCHAR(16)   NOT NULL,
            key             VARCHAR(255)  NOT NULL,
            response        BYTEA         NOT NULL,
            valid_to        TIMESTAMPTZ   NOT NULL,
            created_at      TIMESTAMPTZ   NOT NULL DEFAULT now(),
            PRIMARY KEY (endpoint_name, endpoint_scheme, key)
        );
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_idempotency_keys_valid_to ON idempotency_keys (valid_to);"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS idempotency_keys;")
    op.execute("DROP TABLE IF EXISTS orders;")
