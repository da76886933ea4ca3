from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
from englib.core.models import Base, QueryProperty

REQUEST_STATUSES = ('pending', 'completed', 'rejected')

class TextbookRequest(Base):
    __tablename__ = 'textbook_requests'
    query = QueryProperty()

    id = Column(Integer, primary_key=True)
    textbook_name = Column(String(255), unique=True, nullable=False)
    request_count = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default='pending')
    user_ip = Column(String(45), nullable=True)  # Last requester, anonymized
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'textbook_name': self.textbook_name,
            'request_count': self.request_count,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

class TextbookRequestLog(Base):
    __tablename__ = 'textbook_request_logs'
    query = QueryProperty()

    id = Column(Integer, primary_key=True)
    textbook_name = Column(String(255), nullable=False, index=True)
    user_ip = Column(String(45), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
