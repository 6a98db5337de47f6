"""001 – Initial schema: tenancy, core HR, workflow tables, enums.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("employment_status", ["active", "resigned", "terminated", "retired"]),
    (
        "employment_type",
        ["regular", "probationary", "contractual", "consultant", "intern", "project_based"],
    ),
    ("leave_status", ["pending", "approved", "rejected", "cancelled"]),
    ("kpi_assignment_status", ["pending", "in_progress", "completed"]),
    ("loan_type", ["salary", "emergency", "housing", "educational", "calamity"]),
    (
        "loan_application_status",
        ["draft", "pending", "approved", "rejected", "cancelled"],
    ),
    (
        "document_request_status",
        ["pending", "processing", "ready", "collected", "rejected"],
    ),
    ("preboarding_item_type", ["document_upload", "form_field", "acknowledgment"]),
    ("preboarding_item_status", ["pending", "submitted", "approved", "rejected"]),
    ("training_session_status", ["scheduled", "cancelled", "completed"]),
    ("enrollment_status", ["confirmed", "cancelled", "attended", "no_show"]),
    ("waitlist_status", ["waiting", "promoted", "cancelled"]),
    (
        "notification_type",
        ["info", "action_required", "approval", "reminder", "alert"],
    ),
]

TENANT_COL = "tenant_id   UUID NOT NULL REFERENCES tenants(id) ON DELETE CASCADE"
TIMESTAMPS = """created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()"""


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


def _tenant_index(table: str) -> None:
    op.execute(f"CREATE INDEX ix_{table}_tenant_id ON {table}(tenant_id)")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. tenants / users ────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE tenants (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            slug        VARCHAR(63)  NOT NULL UNIQUE,
            name        VARCHAR(200) NOT NULL,
            is_active   BOOLEAN DEFAULT TRUE,
            {TIMESTAMPS}
        )
    """)
    op.execute(f"""
        CREATE TABLE users (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            email       VARCHAR(255) NOT NULL UNIQUE,
            name        VARCHAR(200) NOT NULL,
            is_active   BOOLEAN DEFAULT TRUE,
            {TIMESTAMPS}
        )
    """)

    # ── 2. departments ────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE departments (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            name        VARCHAR(150) NOT NULL,
            code        VARCHAR(20),
            is_active   BOOLEAN DEFAULT TRUE,
            {TIMESTAMPS},
            CONSTRAINT uq_dept_tenant_name UNIQUE (tenant_id, name)
        )
    """)
    _tenant_index("departments")

    # ── 3. employees ──────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE employees (
            id                       UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            user_id                  UUID REFERENCES users(id) ON DELETE SET NULL,
            employee_number          VARCHAR(20)  NOT NULL,
            first_name               VARCHAR(100) NOT NULL,
            last_name                VARCHAR(100) NOT NULL,
            email                    VARCHAR(255) NOT NULL,
            phone                    VARCHAR(30),
            date_of_birth            DATE,
            address                  JSONB,
            department_id            UUID REFERENCES departments(id),
            position_title           VARCHAR(200),
            employment_type          employment_type DEFAULT 'probationary',
            employment_status        employment_status DEFAULT 'active',
            hire_date                DATE,
            basic_salary             NUMERIC(12,2),
            pay_frequency            VARCHAR(20),
            preboarding_checklist_id UUID,  -- FK added after preboarding_checklists
            is_active                BOOLEAN DEFAULT TRUE,
            {TIMESTAMPS},
            CONSTRAINT uq_employee_number UNIQUE (tenant_id, employee_number),
            CONSTRAINT uq_employee_email  UNIQUE (tenant_id, email),
            CONSTRAINT uq_employee_preboarding_checklist UNIQUE (preboarding_checklist_id)
        )
    """)
    _tenant_index("employees")
    op.execute("CREATE INDEX idx_employees_user ON employees(user_id)")

    # ── 4. leave ──────────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE leave_types (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            code        VARCHAR(10)  NOT NULL,
            name        VARCHAR(100) NOT NULL,
            color       VARCHAR(7),
            is_paid     BOOLEAN DEFAULT TRUE,
            {TIMESTAMPS},
            CONSTRAINT uq_leave_type_code UNIQUE (tenant_id, code)
        )
    """)
    _tenant_index("leave_types")
    op.execute(f"""
        CREATE TABLE leave_applications (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            employee_id    UUID NOT NULL REFERENCES employees(id),
            leave_type_id  UUID NOT NULL REFERENCES leave_types(id),
            start_date     DATE NOT NULL,
            end_date       DATE NOT NULL,
            total_days     NUMERIC(5,1) NOT NULL,
            reason         TEXT,
            status         leave_status DEFAULT 'pending',
            reviewer_id    UUID REFERENCES employees(id),
            reviewed_at    TIMESTAMPTZ,
            {TIMESTAMPS},
            CONSTRAINT ck_leave_date_range CHECK (end_date >= start_date)
        )
    """)
    _tenant_index("leave_applications")
    op.execute("""
        CREATE INDEX ix_leave_applications_range
            ON leave_applications(tenant_id, start_date, end_date)
    """)

    # ── 5. performance ────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE performance_cycle_participants (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            employee_id UUID NOT NULL REFERENCES employees(id),
            cycle_name  VARCHAR(100) NOT NULL,
            {TIMESTAMPS},
            CONSTRAINT uq_participant_cycle UNIQUE (employee_id, cycle_name)
        )
    """)
    _tenant_index("performance_cycle_participants")
    op.execute(f"""
        CREATE TABLE kpi_assignments (
            id                     UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            participant_id         UUID NOT NULL
                                   REFERENCES performance_cycle_participants(id) ON DELETE CASCADE,
            name                   VARCHAR(200) NOT NULL,
            target_value           NUMERIC(14,2) NOT NULL,
            actual_value           NUMERIC(14,2),
            weight                 NUMERIC(5,2) DEFAULT 1.00,
            achievement_percentage NUMERIC(7,2),
            status                 kpi_assignment_status DEFAULT 'pending',
            notes                  TEXT,
            completed_at           TIMESTAMPTZ,
            {TIMESTAMPS}
        )
    """)
    _tenant_index("kpi_assignments")
    op.execute("CREATE INDEX ix_kpi_assignments_participant_id ON kpi_assignments(participant_id)")
    op.execute(f"""
        CREATE TABLE kpi_progress_entries (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            kpi_assignment_id UUID NOT NULL REFERENCES kpi_assignments(id) ON DELETE CASCADE,
            value             NUMERIC(14,2) NOT NULL,
            notes             TEXT,
            recorded_by       UUID REFERENCES users(id) ON DELETE SET NULL,
            recorded_at       TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    _tenant_index("kpi_progress_entries")
    op.execute(
        "CREATE INDEX ix_kpi_progress_entries_kpi_assignment_id "
        "ON kpi_progress_entries(kpi_assignment_id)"
    )

    # ── 6. loan_applications ──────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE loan_applications (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            employee_id          UUID NOT NULL REFERENCES employees(id),
            reference_number     VARCHAR(20) NOT NULL,
            loan_type            loan_type NOT NULL,
            amount_requested     NUMERIC(12,2) NOT NULL,
            term_months          INTEGER NOT NULL,
            purpose              TEXT,
            status               loan_application_status DEFAULT 'draft',
            submitted_at         TIMESTAMPTZ,
            reviewer_id          UUID REFERENCES employees(id),
            reviewed_at          TIMESTAMPTZ,
            amount_approved      NUMERIC(12,2),
            approved_term_months INTEGER,
            interest_rate        NUMERIC(5,2),
            remarks              TEXT,
            cancellation_reason  TEXT,
            cancelled_at         TIMESTAMPTZ,
            created_by           UUID REFERENCES users(id) ON DELETE SET NULL,
            {TIMESTAMPS},
            CONSTRAINT uq_loan_reference UNIQUE (tenant_id, reference_number)
        )
    """)
    _tenant_index("loan_applications")
    op.execute("CREATE INDEX ix_loan_applications_status ON loan_applications(tenant_id, status)")

    # ── 7. document_requests ──────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE document_requests (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            employee_id   UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            document_type VARCHAR(100) NOT NULL,
            purpose       TEXT,
            status        document_request_status DEFAULT 'pending',
            processed_at  TIMESTAMPTZ,
            collected_at  TIMESTAMPTZ,
            admin_notes   TEXT,
            {TIMESTAMPS}
        )
    """)
    _tenant_index("document_requests")
    op.execute("CREATE INDEX ix_document_requests_status ON document_requests(tenant_id, status)")

    # ── 8. preboarding ────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE preboarding_checklists (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            first_name       VARCHAR(100) NOT NULL,
            last_name        VARCHAR(100) NOT NULL,
            email            VARCHAR(255) NOT NULL,
            phone            VARCHAR(30),
            date_of_birth    DATE,
            address          JSONB,
            position_title   VARCHAR(200),
            department_name  VARCHAR(150),
            employment_type  VARCHAR(50),
            start_date       DATE,
            salary           NUMERIC(12,2),
            salary_frequency VARCHAR(20),
            deadline         DATE,
            completed_at     TIMESTAMPTZ,
            created_by       UUID REFERENCES users(id) ON DELETE SET NULL,
            {TIMESTAMPS}
        )
    """)
    _tenant_index("preboarding_checklists")
    op.execute(f"""
        CREATE TABLE preboarding_checklist_items (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            checklist_id     UUID NOT NULL REFERENCES preboarding_checklists(id) ON DELETE CASCADE,
            name             VARCHAR(200) NOT NULL,
            description      TEXT,
            item_type        preboarding_item_type NOT NULL,
            field_key        VARCHAR(50),
            sort_order       INTEGER DEFAULT 0,
            status           preboarding_item_status DEFAULT 'pending',
            form_value       TEXT,
            submitted_at     TIMESTAMPTZ,
            reviewed_at      TIMESTAMPTZ,
            reviewed_by      UUID REFERENCES users(id) ON DELETE SET NULL,
            rejection_reason TEXT,
            {TIMESTAMPS}
        )
    """)
    _tenant_index("preboarding_checklist_items")
    op.execute(
        "CREATE INDEX ix_preboarding_checklist_items_checklist_id "
        "ON preboarding_checklist_items(checklist_id)"
    )

    # Deferred FK: employees.preboarding_checklist_id → preboarding_checklists.id
    op.execute("""
        ALTER TABLE employees
            ADD CONSTRAINT fk_employee_preboarding
            FOREIGN KEY (preboarding_checklist_id) REFERENCES preboarding_checklists(id)
    """)

    # ── 9. training ───────────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE training_sessions (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            title       VARCHAR(200) NOT NULL,
            description TEXT,
            location    VARCHAR(200),
            starts_at   TIMESTAMPTZ NOT NULL,
            ends_at     TIMESTAMPTZ,
            capacity    INTEGER NOT NULL,
            status      training_session_status DEFAULT 'scheduled',
            {TIMESTAMPS}
        )
    """)
    _tenant_index("training_sessions")
    op.execute(f"""
        CREATE TABLE training_enrollments (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            session_id          UUID NOT NULL REFERENCES training_sessions(id) ON DELETE CASCADE,
            employee_id         UUID NOT NULL REFERENCES employees(id),
            status              enrollment_status DEFAULT 'confirmed',
            enrolled_at         TIMESTAMPTZ DEFAULT NOW(),
            enrolled_by         UUID REFERENCES users(id) ON DELETE SET NULL,
            notes               TEXT,
            cancelled_at        TIMESTAMPTZ,
            attended_at         TIMESTAMPTZ,
            cancellation_reason TEXT,
            {TIMESTAMPS}
        )
    """)
    _tenant_index("training_enrollments")
    op.execute(
        "CREATE INDEX ix_training_enrollments_session "
        "ON training_enrollments(session_id, status)"
    )
    op.execute(f"""
        CREATE TABLE training_waitlist (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            session_id   UUID NOT NULL REFERENCES training_sessions(id) ON DELETE CASCADE,
            employee_id  UUID NOT NULL REFERENCES employees(id),
            position     INTEGER NOT NULL,
            joined_at    TIMESTAMPTZ DEFAULT NOW(),
            status       waitlist_status DEFAULT 'waiting',
            promoted_at  TIMESTAMPTZ,
            cancelled_at TIMESTAMPTZ,
            {TIMESTAMPS}
        )
    """)
    _tenant_index("training_waitlist")
    op.execute(
        "CREATE INDEX ix_training_waitlist_queue "
        "ON training_waitlist(session_id, status, joined_at)"
    )

    # ── 10. notifications ─────────────────────────────────────────────────
    op.execute(f"""
        CREATE TABLE notifications (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            recipient_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type         notification_type DEFAULT 'info',
            title        VARCHAR(200) NOT NULL,
            message      TEXT NOT NULL,
            action_url   VARCHAR(500),
            entity_type  VARCHAR(50),
            entity_id    UUID,
            payload      JSONB,
            is_read      BOOLEAN DEFAULT FALSE,
            read_at      TIMESTAMPTZ,
            created_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    _tenant_index("notifications")
    op.execute(
        "CREATE INDEX ix_notifications_recipient_unread "
        "ON notifications(recipient_id, is_read)"
    )

    # ── 11. audit_trail (immutable) ───────────────────────────────────────
    op.execute(f"""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            {TENANT_COL},
            actor_id    UUID REFERENCES users(id),
            action      VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id   UUID NOT NULL,
            old_values  JSONB,
            new_values  JSONB,
            ip_address  INET,
            user_agent  TEXT,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    _tenant_index("audit_trail")
    op.execute("CREATE INDEX ix_audit_trail_actor_id   ON audit_trail(actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity     ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")
    op.execute("CREATE INDEX ix_audit_trail_action     ON audit_trail(action)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    op.execute(
        "ALTER TABLE employees DROP CONSTRAINT IF EXISTS fk_employee_preboarding"
    )

    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "notifications",
        "training_waitlist",
        "training_enrollments",
        "training_sessions",
        "preboarding_checklist_items",
        "preboarding_checklists",
        "document_requests",
        "loan_applications",
        "kpi_progress_entries",
        "kpi_assignments",
        "performance_cycle_participants",
        "leave_applications",
        "leave_types",
        "employees",
        "departments",
        "users",
        "tenants",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
