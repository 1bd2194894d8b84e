from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Text,
    Time,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


SESSION_TYPES = ('normal', 'bilan')
SLOT_STATUSES = ('available', 'booked', 'overlapping', 'unavailable')
RESERVATION_STATUSES = ('confirmed', 'cancelled')
RESERVATION_TYPES = ('individual', 'group')
CANCELLED_BY = ('client', 'admin', 'system')
POINT_TYPES = ('solo', 'team')


class Users(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    role = Column(Enum('client', 'coach', 'admin', name='user_role'), nullable=False, server_default=text("'client'"))
    username = Column(Text, nullable=False, unique=True)
    email = Column(Text, unique=True)
    full_name = Column(Text)
    phone = Column(Text)
    age = Column(Integer)
    gender = Column(Enum('male', 'female', 'other', name='user_gender'))
    goal = Column(Text)
    # points = solo_points + team_points, kept for older clients
    solo_points = Column(Integer, nullable=False, server_default=text('0'))
    team_points = Column(Integer, nullable=False, server_default=text('0'))
    points = Column(Integer, nullable=False, server_default=text('0'))
    is_active = Column(Boolean, nullable=False, server_default=text('1'))
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    coach = relationship('Coaches', uselist=False, back_populates='user')
    reservations = relationship('Reservations', back_populates='user')
    point_transactions = relationship(
        'PointTransactions',
        back_populates='user',
        foreign_keys='PointTransactions.user_id',
    )
    group_reservations = relationship('GroupReservations', back_populates='user')


class Coaches(Base):
    __tablename__ = 'coaches'

    id = Column(Integer, primary_key=True)
    user_id = Column(ForeignKey('users.id', ondelete='SET NULL'), unique=True)
    name = Column(Text, nullable=False)
    specialty = Column(Text, nullable=False)
    bio = Column(Text)
    email = Column(Text)
    photo = Column(Text)
    is_active = Column(Boolean, nullable=False, server_default=text('1'))
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    user = relationship('Users', back_populates='coach')
    time_slots = relationship('TimeSlots', back_populates='coach')
    reservations = relationship('Reservations', back_populates='coach')
    group_courses = relationship('GroupCourses', back_populates='coach')


class TimeSlots(Base):
    __tablename__ = 'coach_availability'
    __table_args__ = (
        UniqueConstraint('coach_id', 'date', 'start_time', 'session_type', name='unique_slot_with_type'),
        Index('idx_coach_availability_coach_date_status', 'coach_id', 'date', 'status'),
    )

    id = Column(Integer, primary_key=True)
    coach_id = Column(ForeignKey('coaches.id', ondelete='CASCADE'), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    session_type = Column(Enum(*SESSION_TYPES, name='session_type'), nullable=False, server_default=text("'normal'"))
    duration_minutes = Column(Integer, nullable=False)
    status = Column(Enum(*SLOT_STATUSES, name='slot_status'), nullable=False, server_default=text("'available'"))
    is_free = Column(Boolean, nullable=False, server_default=text('0'))
    is_derived = Column(Boolean, nullable=False, server_default=text('0'))
    # Weak back-reference: set while the slot is blocked by a reservation
    reservation_id = Column(ForeignKey('reservations.id', ondelete='SET NULL'))
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    coach = relationship('Coaches', back_populates='time_slots')
    reservation = relationship('Reservations', foreign_keys=[reservation_id])


class Reservations(Base):
    __tablename__ = 'reservations'
    __table_args__ = (
        Index('idx_reservations_coach_date', 'coach_id', 'date', 'status'),
    )

    id = Column(Integer, primary_key=True)
    coach_id = Column(ForeignKey('coaches.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(ForeignKey('users.id', ondelete='SET NULL'))  # NULL = guest booking
    full_name = Column(Text)
    email = Column(Text)
    phone = Column(Text)
    age = Column(Integer)
    gender = Column(Text)
    goal = Column(Text)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    session_type = Column(Enum(*SESSION_TYPES, name='session_type'), nullable=False, server_default=text("'normal'"))
    reservation_type = Column(Enum(*RESERVATION_TYPES, name='reservation_type'), nullable=False, server_default=text("'individual'"))
    status = Column(Enum(*RESERVATION_STATUSES, name='reservation_status'), nullable=False, server_default=text("'confirmed'"))
    is_free = Column(Boolean, nullable=False, server_default=text('0'))
    created_by = Column(Text, nullable=False, server_default=text("'client'"))
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    cancelled_at = Column(DateTime)
    cancelled_by = Column(Enum(*CANCELLED_BY, name='cancelled_by'))

    coach = relationship('Coaches', back_populates='reservations')
    user = relationship('Users', back_populates='reservations')
    point_transactions = relationship('PointTransactions', back_populates='reservation')


class PointTransactions(Base):
    __tablename__ = 'point_transactions'

    id = Column(Integer, primary_key=True)
    user_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    point_type = Column(Enum(*POINT_TYPES, name='point_type'), nullable=False)
    amount = Column(Integer, nullable=False)  # signed
    kind = Column(Enum('debit', 'credit', 'adjustment', name='point_tx_kind'), nullable=False)
    balance_after = Column(Integer, nullable=False)
    reservation_id = Column(ForeignKey('reservations.id', ondelete='SET NULL'))
    description = Column(Text)
    created_by = Column(ForeignKey('users.id', ondelete='SET NULL'))
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    user = relationship('Users', back_populates='point_transactions', foreign_keys=[user_id])
    reservation = relationship('Reservations', back_populates='point_transactions')


class GroupCourses(Base):
    __tablename__ = 'group_courses'

    id = Column(Integer, primary_key=True)
    coach_id = Column(ForeignKey('coaches.id', ondelete='CASCADE'), nullable=False)
    title = Column(Text, nullable=False)
    description = Column(Text)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False, server_default=text('60'))
    max_participants = Column(Integer, nullable=False, server_default=text('10'))
    is_active = Column(Boolean, nullable=False, server_default=text('1'))
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    coach = relationship('Coaches', back_populates='group_courses')
    reservations = relationship('GroupReservations', back_populates='course')


class GroupReservations(Base):
    __tablename__ = 'group_reservations'
    __table_args__ = (
        Index('idx_group_reservations_course_status', 'course_id', 'status'),
    )

    id = Column(Integer, primary_key=True)
    course_id = Column(ForeignKey('group_courses.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    status = Column(Enum(*RESERVATION_STATUSES, name='reservation_status'), nullable=False, server_default=text("'confirmed'"))
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    cancelled_at = Column(DateTime)
    cancelled_by = Column(Enum(*CANCELLED_BY, name='cancelled_by'))

    course = relationship('GroupCourses', back_populates='reservations')
    user = relationship('Users', back_populates='group_reservations')
