from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


class FormModel(Base):
    __tablename__ = "forms"

    id = Column(String, primary_key=True)
    topic = Column(String)
    description = Column(Text)
    categories = Column(Text)
    status = Column(String)
    submissions = Column(Integer, default=0)
    access_mode = Column(String)
    access_code = Column(String, nullable=True)
    response_draft = Column(Text, nullable=True)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    fields = relationship(
        "FieldModel",
        order_by="FieldModel.position",
        cascade="all, delete-orphan",
    )


class FieldModel(Base):
    __tablename__ = "fields"

    # Field ids are only unique within their form.
    form_id = Column(String, ForeignKey("forms.id"), primary_key=True)
    id = Column(String, primary_key=True)
    position = Column(Integer)
    label = Column(String)
    type = Column(String)
    category = Column(String)
    required = Column(Boolean, default=False)
    options = Column(Text)
    array_config = Column(Text, nullable=True)


class SubmissionModel(Base):
    __tablename__ = "submissions"

    id = Column(String, primary_key=True)
    form_id = Column(String, index=True)
    data_json = Column(Text)
    created_at = Column(DateTime)


class FileModel(Base):
    __tablename__ = "files"

    id = Column(String, primary_key=True)
    form_id = Column(String, index=True)
    original_name = Column(String)
    stored_path = Column(Text)
    content_type = Column(String)
    size = Column(Integer)
    created_at = Column(DateTime)
