from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from splitlink.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    twitter_id = Column(String(255), unique=True, index=True, nullable=False)
    login = Column(String(255))
    access_token = Column(String(255))
    access_secret = Column(String(255))
    admin = Column(Boolean, nullable=False, default=False)
    banned = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    links = relationship("Link", back_populates="user")


class Link(Base):
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    short = Column(String(32), unique=True, index=True, nullable=False)
    title = Column(String(255))
    description = Column(String(1000))
    masked = Column(Boolean, nullable=False, default=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="links")
    targets = relationship(
        "Target",
        back_populates="link",
        cascade="all, delete-orphan",
        order_by="Target.id",
    )

    def url(self, public_base_url: str) -> str:
        return f"{public_base_url.rstrip('/')}/{self.short}"


class Target(Base):
    __tablename__ = "targets"

    id = Column(Integer, primary_key=True, index=True)
    link_id = Column(Integer, ForeignKey("links.id"), index=True, nullable=False)
    url = Column(String(1500), nullable=False)
    weight = Column(Integer, nullable=False, default=50)
    hits = Column(Integer, nullable=False, default=0)

    link = relationship("Link", back_populates="targets")


class Visit(Base):
    """One redirect. Rows are only ever inserted."""

    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, index=True)
    link_id = Column(Integer, index=True)
    target_id = Column(Integer, index=True)
    user_id = Column(Integer, index=True)
    remote_address = Column(String(255))
    user_agent = Column(String(255))
    http_referer = Column(String(255))
    imported_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
