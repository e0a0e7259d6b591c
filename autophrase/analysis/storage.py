from __future__ import annotations

from pathlib import Path
from threading import RLock
from typing import Dict, FrozenSet, Iterable, List, Sequence, Set, Tuple, Union

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import PhraseSourceError

DEFAULT_SCENE_ID = 0


def parse_phrase_lines(text: str) -> List[str]:
    """每行一个短语；空行与 # 开头的注释行跳过。"""
    phrases: List[str] = []
    for line in text.splitlines():
        phrase = line.strip()
        if not phrase or phrase.startswith("#"):
            continue
        phrases.append(phrase)
    return phrases


def split_paths(value: Union[str, Sequence[str], None]) -> List[Path]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [Path(item.strip()) for item in value if item and item.strip()]


# 进程级缓存：path -> (mtime_ns, 短语)，文件未变更时不重复读取
_file_cache: Dict[str, Tuple[int, FrozenSet[str]]] = {}
_file_cache_lock = RLock()


class FilePhraseSource:
    """
    从一个或多个 UTF-8 词表文件读取短语。

    文件缺失只记日志并跳过（退化为空词典），编码错误抛 PhraseSourceError。
    读取结果按文件修改时间缓存在进程内，多个实例共享。
    """

    def __init__(self, paths: Union[str, Sequence[str], None]) -> None:
        self._paths = split_paths(paths)

    @property
    def paths(self) -> List[Path]:
        return list(self._paths)

    def load_phrases(self) -> Set[str]:
        phrases: Set[str] = set()
        for path in self._paths:
            if not path.exists():
                logger.warning(f"短语文件不存在，已跳过: {path}")
                continue
            phrases.update(self._load_file(path))
        return phrases

    def _load_file(self, path: Path) -> FrozenSet[str]:
        key = str(path.resolve())
        mtime = path.stat().st_mtime_ns
        with _file_cache_lock:
            cached = _file_cache.get(key)
            if cached is not None and cached[0] == mtime:
                return cached[1]
            try:
                content = path.read_text(encoding="utf-8")
            except UnicodeDecodeError as exc:
                raise PhraseSourceError(
                    f"短语文件编码必须为 UTF-8: {path}", details={"path": str(path)}
                ) from exc
            loaded = frozenset(parse_phrase_lines(content))
            _file_cache[key] = (mtime, loaded)
            logger.info(f"加载短语文件: path={path}, count={len(loaded)}")
            return loaded


_schema_lock = RLock()
_initialized_binds: Set[int] = set()


def ensure_phrase_tables(db: Session) -> None:
    """无迁移工具时，在首次使用时确保短语表存在。"""
    from autophrase.models.phrase import AutoPhrase

    bind = db.get_bind()
    bind_id = id(bind)
    with _schema_lock:
        if bind_id in _initialized_binds:
            return
        from autophrase.core.database import Base

        Base.metadata.create_all(bind=bind, tables=[AutoPhrase.__table__])
        _initialized_binds.add(bind_id)


def normalize_phrase(phrase: str) -> str:
    return " ".join((phrase or "").split())


class SqlAlchemyPhraseStore:
    """按 scene_id 隔离的短语管理存储（表 autophrase_phrases）。"""

    def __init__(self, db: Session, scene_id: int = DEFAULT_SCENE_ID) -> None:
        self._db = db
        self._scene_id = int(scene_id)
        ensure_phrase_tables(db)

    @property
    def scene_id(self) -> int:
        return self._scene_id

    def load_phrases(self) -> Set[str]:
        from autophrase.models.phrase import AutoPhrase

        rows = self._db.execute(
            select(AutoPhrase.phrase).where(AutoPhrase.scene_id == self._scene_id)
        ).all()
        return {phrase for (phrase,) in rows if phrase and str(phrase).strip()}

    def add_phrase(self, phrase: str) -> bool:
        from autophrase.models.phrase import AutoPhrase

        try:
            self._db.add(AutoPhrase(scene_id=self._scene_id, phrase=phrase))
            self._db.commit()
            return True
        except IntegrityError:
            self._db.rollback()
            return False

    def delete_phrase(self, phrase: str) -> bool:
        from autophrase.models.phrase import AutoPhrase

        result = self._db.execute(
            delete(AutoPhrase).where(
                AutoPhrase.scene_id == self._scene_id,
                AutoPhrase.phrase == phrase,
            )
        )
        self._db.commit()
        return (result.rowcount or 0) > 0

    def batch_upsert(self, phrases: Iterable[str], operation: str) -> Tuple[int, int, bool]:
        """
        返回：(success_count, fail_count, changed)
        - success_count：合法短语（至少两个词）计为成功，重复新增/删除不存在也算成功
        - fail_count：空行、单个词
        - changed：是否产生了实际变更
        """
        op = operation.strip().upper()
        if op not in {"ADD", "DELETE"}:
            raise ValueError("operation 仅支持 ADD/DELETE")

        success = 0
        fail = 0
        changed = False
        for raw in phrases:
            phrase = normalize_phrase(raw)
            if len(phrase.split(" ")) < 2:
                fail += 1
                continue
            success += 1
            if op == "ADD":
                if self.add_phrase(phrase):
                    changed = True
            else:
                if self.delete_phrase(phrase):
                    changed = True
        return success, fail, changed
