from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Text, Float, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

Base = declarative_base()


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    nickname = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=True)
    password_hash = Column(String, nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    # Location proxy, resolved to coordinates through postal_codes
    postal_code = Column(String(10), nullable=False, index=True)
    radius_km = Column(Integer, nullable=False, default=10)
    selected_album_id = Column(Integer, ForeignKey(
        "albums.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    selected_album = relationship("Album")
    stickers = relationship(
        "UserSticker", back_populates="user", passive_deletes=True)


class PostalCode(Base):
    __tablename__ = "postal_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(10), unique=True, index=True, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    place_name = Column(String, nullable=True)


class Album(Base):
    __tablename__ = "albums"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    year = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    stickers = relationship(
        "Sticker", back_populates="album", passive_deletes=True)


class Sticker(Base):
    __tablename__ = "stickers"

    id = Column(Integer, primary_key=True, index=True)
    album_id = Column(Integer, ForeignKey(
        "albums.id", ondelete="CASCADE"), nullable=False, index=True)
    # Printed label, e.g. "12" or "FWC1"
    number = Column(String, nullable=False)
    name = Column(String, nullable=False)
    team = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    album = relationship("Album", back_populates="stickers")

    __table_args__ = (UniqueConstraint(
        'album_id', 'number', name='uq_sticker_album_number'),)


class UserSticker(Base):
    __tablename__ = "user_stickers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    sticker_id = Column(Integer, ForeignKey(
        "stickers.id", ondelete="CASCADE"), nullable=False, index=True)
    owned = Column(Boolean, nullable=False, default=False)
    duplicate = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="stickers")
    sticker = relationship("Sticker")

    __table_args__ = (
        UniqueConstraint('user_id', 'sticker_id', name='uq_user_sticker'),
        # A duplicate is always also owned
        CheckConstraint('owned OR NOT duplicate',
                        name='ck_user_sticker_duplicate_owned'),
    )

    @property
    def status(self) -> str:
        if self.duplicate:
            return "duplicate"
        if self.owned:
            return "owned"
        return "missing"


class Match(Base):
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, index=True)
    # Pair stored in canonical order: user1_id < user2_id
    user1_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    user2_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    initiator_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False)
    album_id = Column(Integer, ForeignKey(
        "albums.id", ondelete="CASCADE"), nullable=False, index=True)
    # active, closed
    status = Column(String, nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user1 = relationship("User", foreign_keys=[user1_id])
    user2 = relationship("User", foreign_keys=[user2_id])
    album = relationship("Album")

    __table_args__ = (
        UniqueConstraint('album_id', 'user1_id', 'user2_id', name='uq_match_pair'),
        CheckConstraint('user1_id < user2_id', name='ck_match_pair_order'),
    )

    def other_user_id(self, user_id: int) -> int:
        return self.user2_id if self.user1_id == user_id else self.user1_id


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(Integer, ForeignKey(
        "matches.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True),
                        server_default=func.now(), index=True)

    sender = relationship("User")


class Report(Base):
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    reporter_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    reported_user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="SET NULL"), nullable=True, index=True)
    match_id = Column(Integer, ForeignKey(
        "matches.id", ondelete="SET NULL"), nullable=True)
    # inappropriate, spam, no_show, fake_profile, other
    type = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    # pending, resolved, dismissed
    status = Column(String, nullable=False, default="pending", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    reporter = relationship("User", foreign_keys=[reporter_id])
    reported_user = relationship("User", foreign_keys=[reported_user_id])
