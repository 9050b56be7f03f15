import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Employee(Base):
    __tablename__ = "employees"

    matricule: Mapped[str] = mapped_column(String(64), primary_key=True)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    department: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    role: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        Enum("Active", "Inactive", name="employee_status"),
        nullable=False,
        default="Active",
    )
    # Payroll summary counters, as imported
    days_worked: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    days_off: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_days: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    period: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    punches: Mapped[list["Punch"]] = relationship(
        "Punch",
        back_populates="employee",
        cascade="all, delete-orphan",
        order_by="Punch.punch_time",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Employee matricule={self.matricule} department={self.department}>"


class Punch(Base):
    __tablename__ = "punches"

    __table_args__ = (
        UniqueConstraint("matricule", "punch_time", "direction", name="uq_punch_dedup"),
        Index("ix_punch_matricule_time", "matricule", "punch_time"),
    )

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    matricule: Mapped[str] = mapped_column(
        String(64), ForeignKey("employees.matricule", ondelete="CASCADE"), nullable=False
    )
    punch_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    direction: Mapped[str] = mapped_column(
        Enum("IN", "OUT", name="punch_direction"), nullable=False, default="IN"
    )
    note: Mapped[str | None] = mapped_column(String(255), nullable=True)
    operation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    raw_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    raw_lateness: Mapped[float | None] = mapped_column(Float, nullable=True)
    raw_absence: Mapped[str | None] = mapped_column(String(64), nullable=True)
    upload_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    employee: Mapped["Employee"] = relationship("Employee", back_populates="punches")

    def __repr__(self) -> str:
        return (
            f"<Punch id={self.id} matricule={self.matricule} "
            f"punch_time={self.punch_time} direction={self.direction}>"
        )


class Absence(Base):
    __tablename__ = "absences"

    __table_args__ = (
        # at most one FILE and one MANUAL record per employee and day
        UniqueConstraint("matricule", "date", "source", name="uq_absence_source"),
        Index("ix_absence_date", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    matricule: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    reason_code: Mapped[str] = mapped_column(String(128), nullable=False)
    source: Mapped[str] = mapped_column(
        Enum("FILE", "MANUAL", name="absence_source"), nullable=False
    )
    note: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    upload_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<Absence id={self.id} matricule={self.matricule} "
            f"date={self.date} source={self.source}>"
        )


class AbsenceType(Base):
    __tablename__ = "absence_types"

    reason_code: Mapped[str] = mapped_column(String(128), primary_key=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="OTHER")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class DataVersion(Base):
    """Monotonic counters bumped on every write to a data set."""

    __tablename__ = "data_versions"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    recomputed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ImportHistory(Base):
    __tablename__ = "import_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    upload_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    status: Mapped[str] = mapped_column(
        Enum("success", "partial", "failed", name="import_status_enum"), nullable=False
    )
    logs: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<ImportHistory id={self.id} filename={self.filename} status={self.status}>"
