from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from englib.core.models import Base, QueryProperty

DEFAULT_CATEGORY_ICON = '📚'
DEFAULT_DISPLAY_ORDER = 999

class Category(Base):
    __tablename__ = 'categories'
    query = QueryProperty()

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    icon = Column(String(16), nullable=False, default=DEFAULT_CATEGORY_ICON)
    display_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Deleting a category leaves its textbooks uncategorized
    textbooks = relationship('Textbook', back_populates='category')

    def summary(self):
        return {
            'id': self.id,
            'name': self.name,
            'icon': self.icon or DEFAULT_CATEGORY_ICON,
            'display_order': self.display_order if self.display_order is not None else DEFAULT_DISPLAY_ORDER,
        }

class Textbook(Base):
    __tablename__ = 'textbooks'
    query = QueryProperty()

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    dropbox_path = Column(String(1024), nullable=False, unique=True)
    category_id = Column(Integer, ForeignKey('categories.id', ondelete='SET NULL'), nullable=True)
    display_order = Column(Integer, nullable=False, default=DEFAULT_DISPLAY_ORDER)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    category = relationship('Category', back_populates='textbooks')
    files = relationship('File', back_populates='textbook', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'dropbox_path': self.dropbox_path,
            'category_id': self.category_id,
            'display_order': self.display_order,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

class File(Base):
    __tablename__ = 'files'
    query = QueryProperty()

    id = Column(Integer, primary_key=True)
    textbook_id = Column(Integer, ForeignKey('textbooks.id'), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    dropbox_path = Column(String(1024), nullable=False)
    path_lower = Column(String(1024), nullable=False, unique=True)
    file_size = Column(BigInteger, nullable=False, default=0)  # Size in bytes
    last_modified = Column(DateTime, nullable=True)
    content_hash = Column(String(128), nullable=True)
    click_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    textbook = relationship('Textbook', back_populates='files')
    clicks = relationship('FileClick', back_populates='file', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'dropbox_path': self.dropbox_path,
            'file_size': self.file_size,
            'click_count': self.click_count,
            'last_modified': self.last_modified.isoformat() if self.last_modified else None,
            'is_active': self.is_active,
        }

class FileClick(Base):
    __tablename__ = 'file_clicks'
    query = QueryProperty()

    id = Column(Integer, primary_key=True)
    file_id = Column(Integer, ForeignKey('files.id'), nullable=False, index=True)
    clicked_at = Column(DateTime, default=datetime.utcnow, index=True)
    user_ip = Column(String(45), nullable=True)

    file = relationship('File', back_populates='clicks')
