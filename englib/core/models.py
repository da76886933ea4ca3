from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import declarative_base
from datetime import datetime
from englib import db_session

Base = declarative_base()

class QueryProperty:
    """Query property descriptor for models"""
    def __get__(self, instance, owner):
        return db_session.query(owner)

class Setting(Base):
    __tablename__ = 'settings'
    query = QueryProperty()

    id = Column(Integer, primary_key=True)
    key = Column(String(100), unique=True, nullable=False)
    value = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @classmethod
    def get_value(cls, key, default=None):
        setting = cls.query.filter_by(key=key).first()
        if setting and setting.value is not None:
            return setting.value
        return default

    @classmethod
    def set_value(cls, key, value):
        """Upsert a setting; caller commits"""
        setting = cls.query.filter_by(key=key).first()
        if setting:
            setting.value = value
        else:
            setting = cls(key=key, value=value)
            db_session.add(setting)
        return setting

class SyncLog(Base):
    __tablename__ = 'sync_logs'
    query = QueryProperty()

    id = Column(Integer, primary_key=True)
    type = Column(String(20), nullable=False)  # full, incremental
    status = Column(String(20), nullable=False, default='running')  # running, success, error
    started_at = Column(DateTime, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    files_added = Column(Integer, default=0, nullable=False)
    files_updated = Column(Integer, default=0, nullable=False)
    files_deleted = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'status': self.status,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'files_added': self.files_added,
            'files_updated': self.files_updated,
            'files_deleted': self.files_deleted,
            'error_message': self.error_message,
        }
