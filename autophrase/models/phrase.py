from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint, func

from autophrase.core.database import Base


class AutoPhrase(Base):
    """自动短语词条（按场景隔离）。"""

    __tablename__ = "autophrase_phrases"
    __table_args__ = (UniqueConstraint("scene_id", "phrase", name="uq_autophrase_scene_phrase"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    scene_id = Column(Integer, nullable=False, server_default="0", comment="场景ID（默认0）")
    phrase = Column(String(255), nullable=False, comment="多词短语，单空格分隔")
    created_at = Column(DateTime, nullable=False, server_default=func.now())
