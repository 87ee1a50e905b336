import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    """Generate a string UUID primary key"""
    return str(uuid.uuid4())


# ============================================================================
# PEOPLE
# ============================================================================


class Profile(Base):
    """One row per auth user. The id matches the auth platform's user id."""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    role = Column(String(20), default="client", nullable=False, index=True)  # admin, assistant, client
    first_name = Column(String(100), default="", nullable=False)
    last_name = Column(String(100), default="", nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    display_name = Column(String(150), nullable=True)
    internal_notes = Column(Text, nullable=True)  # Staff-only notes, never shown to the client
    is_vip = Column(Boolean, default=False, nullable=False)
    tags = Column(String(500), nullable=True)  # Comma separated
    # instagram, tiktok, pinterest, word_of_mouth, google_search, referral, website_direct
    source = Column(String(50), nullable=True)
    notify_sms = Column(Boolean, default=True, nullable=False)
    notify_email = Column(Boolean, default=True, nullable=False)
    notify_marketing = Column(Boolean, default=False, nullable=False)
    referral_code = Column(String(50), unique=True, nullable=True)
    referred_by = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    square_customer_id = Column(String(255), nullable=True)
    zoho_contact_id = Column(String(255), nullable=True)  # Zoho CRM contact
    zoho_customer_id = Column(String(255), nullable=True)  # Zoho Books customer
    onboarding_data = Column(JSON, nullable=True)  # Wizard answers; birthday stored as "MM/DD"
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    referrer = relationship("Profile", remote_side=[id], foreign_keys=[referred_by])

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


# ============================================================================
# SERVICES & BOOKINGS
# ============================================================================


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    category = Column(String(20), nullable=False, index=True)  # lash, jewelry, crochet, consulting
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price_in_cents = Column(Integer, nullable=True)
    price_min_in_cents = Column(Integer, nullable=True)
    price_max_in_cents = Column(Integer, nullable=True)
    deposit_in_cents = Column(Integer, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    add_ons = relationship("ServiceAddOn", back_populates="service", cascade="all, delete-orphan")


class ServiceAddOn(Base):
    __tablename__ = "service_add_ons"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price_in_cents = Column(Integer, default=0, nullable=False)
    additional_minutes = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    service = relationship("Service", back_populates="add_ons")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    staff_id = Column(String(36), ForeignKey("profiles.id"), nullable=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    # pending, confirmed, in_progress, completed, cancelled, no_show
    status = Column(String(20), default="pending", nullable=False, index=True)
    starts_at = Column(DateTime, nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)
    total_in_cents = Column(Integer, default=0, nullable=False)
    discount_in_cents = Column(Integer, default=0, nullable=False)
    client_notes = Column(Text, nullable=True)
    staff_notes = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    square_appointment_id = Column(String(255), nullable=True)
    square_order_id = Column(String(255), nullable=True, index=True)
    zoho_project_id = Column(String(255), nullable=True)  # Zoho CRM deal id
    zoho_invoice_id = Column(String(255), nullable=True)  # Zoho Books invoice id
    confirmed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    deposit_paid_in_cents = Column(Integer, nullable=True)
    deposit_paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Profile", foreign_keys=[client_id])
    staff = relationship("Profile", foreign_keys=[staff_id])
    service = relationship("Service")
    add_ons = relationship("BookingAddOn", back_populates="booking", cascade="all, delete-orphan")


class BookingAddOn(Base):
    __tablename__ = "booking_add_ons"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    add_on_name = Column(String(255), nullable=False)
    price_in_cents = Column(Integer, default=0, nullable=False)

    booking = relationship("Booking", back_populates="add_ons")


# ============================================================================
# REVIEWS & LOYALTY
# ============================================================================


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True, index=True)
    client_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    rating = Column(Integer, nullable=False)  # 1-5
    body = Column(Text, nullable=True)
    service_name = Column(String(255), nullable=True)  # Snapshot at review time
    source = Column(String(50), default="website", nullable=False)  # website, google, instagram
    status = Column(String(20), default="pending", nullable=False, index=True)  # pending, approved, rejected
    is_featured = Column(Boolean, default=False, nullable=False)
    staff_response = Column(Text, nullable=True)
    staff_responded_at = Column(DateTime, nullable=True)
    is_flagged = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Profile")


class LoyaltyTransaction(Base):
    """Append-only ledger; a profile's balance is the sum of its rows."""

    __tablename__ = "loyalty_transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    profile_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    points = Column(Integer, nullable=False)  # Signed, never zero
    type = Column(String(30), nullable=False)
    description = Column(String(500), nullable=True)
    reference_id = Column(String(255), nullable=True)  # Booking/order/review id that earned the points
    created_at = Column(DateTime, server_default=func.now(), index=True)


# ============================================================================
# TRAINING
# ============================================================================


class TrainingProgram(Base):
    __tablename__ = "training_programs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    type = Column(String(20), nullable=False)  # Service category
    description = Column(Text, nullable=True)
    format = Column(String(20), default="in_person", nullable=False)  # in_person, hybrid, online
    duration_hours = Column(Integer, nullable=True)
    duration_days = Column(Integer, nullable=True)
    price_in_cents = Column(Integer, nullable=True)
    deposit_in_cents = Column(Integer, nullable=True)
    max_students = Column(Integer, nullable=True)
    certification_provided = Column(Boolean, default=True, nullable=False)
    kit_included = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    waitlist_open = Column(Boolean, default=True, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    sessions = relationship("TrainingSession", back_populates="program", cascade="all, delete-orphan")
    modules = relationship(
        "TrainingModule",
        back_populates="program",
        cascade="all, delete-orphan",
        order_by="TrainingModule.sort_order",
    )


class TrainingSession(Base):
    __tablename__ = "training_sessions"

    id = Column(Integer, primary_key=True, index=True)
    program_id = Column(Integer, ForeignKey("training_programs.id", ondelete="CASCADE"), nullable=False)
    starts_at = Column(DateTime, nullable=False)
    ends_at = Column(DateTime, nullable=True)
    location = Column(String(255), nullable=True)
    max_students = Column(Integer, nullable=True)  # Overrides program capacity when set
    # scheduled, in_progress, completed, cancelled
    status = Column(String(20), default="scheduled", nullable=False)

    program = relationship("TrainingProgram", back_populates="sessions")


class TrainingModule(Base):
    __tablename__ = "training_modules"

    id = Column(Integer, primary_key=True, index=True)
    program_id = Column(Integer, ForeignKey("training_programs.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)

    program = relationship("TrainingProgram", back_populates="modules")
    lessons = relationship(
        "TrainingLesson", cascade="all, delete-orphan", order_by="TrainingLesson.sort_order"
    )


class TrainingLesson(Base):
    __tablename__ = "training_lessons"

    id = Column(Integer, primary_key=True, index=True)
    module_id = Column(Integer, ForeignKey("training_modules.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    program_id = Column(Integer, ForeignKey("training_programs.id"), nullable=False, index=True)
    session_id = Column(Integer, ForeignKey("training_sessions.id", ondelete="SET NULL"), nullable=True)
    # waitlisted, enrolled, in_progress, completed, withdrawn
    status = Column(String(20), default="enrolled", nullable=False)
    amount_paid_in_cents = Column(Integer, default=0, nullable=False)
    zoho_invoice_id = Column(String(255), nullable=True)
    enrolled_at = Column(DateTime, server_default=func.now())
    completed_at = Column(DateTime, nullable=True)
    withdrawn_at = Column(DateTime, nullable=True)

    client = relationship("Profile")
    program = relationship("TrainingProgram")
    session = relationship("TrainingSession")
    certificate = relationship(
        "Certificate", uselist=False, back_populates="enrollment", cascade="all, delete-orphan"
    )


class Certificate(Base):
    __tablename__ = "certificates"

    id = Column(Integer, primary_key=True, index=True)
    enrollment_id = Column(
        Integer, ForeignKey("enrollments.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    code = Column(String(50), unique=True, nullable=False)
    issued_at = Column(DateTime, server_default=func.now())

    enrollment = relationship("Enrollment", back_populates="certificate")


# ============================================================================
# SHOP
# ============================================================================


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    product_type = Column(String(50), nullable=True)  # physical, digital, custom
    # fixed_price, starting_at, price_range, contact_for_quote
    pricing_type = Column(String(30), default="fixed_price", nullable=False)
    price_in_cents = Column(Integer, nullable=True)
    price_min_in_cents = Column(Integer, nullable=True)
    price_max_in_cents = Column(Integer, nullable=True)
    # in_stock, made_to_order, pre_order, out_of_stock
    availability = Column(String(20), default="in_stock", nullable=False)
    stock_count = Column(Integer, default=0, nullable=False)
    image_url = Column(String(500), nullable=True)
    tags = Column(String(500), nullable=True)  # Comma separated
    is_published = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Order(Base):
    """One row per cart line; rows from the same checkout share an order-number prefix."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(100), unique=True, nullable=False)
    client_id = Column(String(36), ForeignKey("profiles.id"), nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(255), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    # inquiry, quoted, accepted, in_progress, ready_for_pickup, completed, cancelled
    status = Column(String(20), default="inquiry", nullable=False, index=True)
    quoted_in_cents = Column(Integer, nullable=True)
    final_in_cents = Column(Integer, nullable=True)
    fulfillment_method = Column(String(20), nullable=True)  # pickup_cash, pickup_online
    square_order_id = Column(String(255), nullable=True, index=True)
    zoho_invoice_id = Column(String(255), nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Profile")
    product = relationship("Product")


# ============================================================================
# PAYMENTS & INTEGRATIONS
# ============================================================================


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True, index=True)
    client_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    amount_in_cents = Column(Integer, nullable=False)
    tip_in_cents = Column(Integer, default=0, nullable=False)
    refunded_in_cents = Column(Integer, default=0, nullable=False)
    # pending, paid, failed, refunded, partially_refunded
    status = Column(String(20), default="pending", nullable=False)
    method = Column(String(20), nullable=True)  # square_card, square_cash, square_wallet, square_gift_card, square_other
    square_payment_id = Column(String(255), unique=True, nullable=True)
    square_order_id = Column(String(255), nullable=True)
    square_receipt_url = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    refunded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class SyncLog(Base):
    """Audit trail for every call to Square, Zoho and Resend."""

    __tablename__ = "sync_log"

    id = Column(Integer, primary_key=True, index=True)
    provider = Column(String(20), nullable=False)  # square, zoho, resend
    direction = Column(String(10), default="outbound", nullable=False)  # inbound, outbound
    status = Column(String(10), nullable=False)  # success, failed, skipped
    entity_type = Column(String(100), nullable=False, index=True)
    local_id = Column(String(255), nullable=True, index=True)
    remote_id = Column(String(255), nullable=True)
    message = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    payload = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class WebhookEvent(Base):
    __tablename__ = "webhook_events"
    __table_args__ = (UniqueConstraint("provider", "external_event_id", name="uq_webhook_event"),)

    id = Column(Integer, primary_key=True, index=True)
    provider = Column(String(20), nullable=False)
    external_event_id = Column(String(255), nullable=False)
    event_type = Column(String(100), nullable=False)
    payload = Column(JSON, nullable=True)
    is_processed = Column(Boolean, default=False, nullable=False)
    attempts = Column(Integer, default=1, nullable=False)
    error_message = Column(Text, nullable=True)
    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
