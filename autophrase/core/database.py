# 数据库连接池生成器
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from autophrase.core.config import settings

SQLALCHEMY_DATABASE_URL = settings.database_url

# pool_recycle=3600: MySQL 默认会断开空闲 8 小时的连接，这里每 1 小时回收重连
# pool_pre_ping=True: 每次从池子里拿连接前先 ping 一下，确保连接可用
if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        pool_recycle=3600,
        pool_pre_ping=True,
    )

# 每个请求由 deps.get_db 生成一个新的会话
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 所有 Model 都继承这个类
Base = declarative_base()
