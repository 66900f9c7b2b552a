"""Durable translation store (SQLModel over SQLite).

One database file per origin. Subtitle translations are scoped to a work
identity and a language pair; word translations are shared across works.
"""

from __future__ import annotations

import time
from pathlib import Path

from sqlalchemy import delete, func
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine, select

from dualsub.core.models import CacheEntry, WordEntry

SECONDS_PER_DAY = 60 * 60 * 24


def days_since_epoch(now: float | None = None) -> int:
    """Whole days since the Unix epoch."""
    return int((time.time() if now is None else now) // SECONDS_PER_DAY)


class SubtitleTranslation(SQLModel, table=True):
    __tablename__ = "subtitle_translations"

    work_identity: str = Field(primary_key=True)
    source_lang: str = Field(primary_key=True)
    target_lang: str = Field(primary_key=True)
    original_text: str = Field(primary_key=True)
    translated_text: str


class WorkMetadata(SQLModel, table=True):
    __tablename__ = "work_metadata"

    work_identity: str = Field(primary_key=True)
    last_accessed_day: int = Field(default=0, index=True)


class WordTranslation(SQLModel, table=True):
    __tablename__ = "word_translations"

    word: str = Field(primary_key=True)
    source_lang: str = Field(primary_key=True)
    target_lang: str = Field(primary_key=True)
    translation: str
    source: str = "wiktionary"
    last_accessed_day: int = Field(default=0, index=True)


class CacheStore:
    """Thin persistence layer over one SQLite database.

    Args:
        db_path: Database file, or ``None`` for a private in-memory database.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        if db_path is None:
            self.engine = create_engine(
                "sqlite://",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(
                f"sqlite:///{db_path}", connect_args={"check_same_thread": False}
            )
        SQLModel.metadata.create_all(self.engine)

    # -- subtitles --------------------------------------------------------

    def load_work(
        self, work_identity: str, source_lang: str, target_lang: str, today: int
    ) -> list[CacheEntry]:
        """Read every entry for a work and language pair, refreshing its access day."""
        with Session(self.engine) as session:
            rows = session.exec(
                select(SubtitleTranslation).where(
                    SubtitleTranslation.work_identity == work_identity,
                    SubtitleTranslation.source_lang == source_lang,
                    SubtitleTranslation.target_lang == target_lang,
                )
            ).all()
            session.merge(WorkMetadata(work_identity=work_identity, last_accessed_day=today))
            session.commit()
            return [
                CacheEntry(
                    work_identity=row.work_identity,
                    source_lang=row.source_lang,
                    target_lang=row.target_lang,
                    original_key=row.original_text,
                    translated_text=row.translated_text,
                )
                for row in rows
            ]

    def get_subtitle(
        self, work_identity: str, source_lang: str, target_lang: str, original_key: str
    ) -> str | None:
        with Session(self.engine) as session:
            row = session.get(
                SubtitleTranslation, (work_identity, source_lang, target_lang, original_key)
            )
            return row.translated_text if row else None

    def save_subtitles(self, entries: list[CacheEntry]) -> None:
        """Write a chunk of entries in a single transaction."""
        if not entries:
            return
        with Session(self.engine) as session:
            for entry in entries:
                session.merge(
                    SubtitleTranslation(
                        work_identity=entry.work_identity,
                        source_lang=entry.source_lang,
                        target_lang=entry.target_lang,
                        original_text=entry.original_key,
                        translated_text=entry.translated_text,
                    )
                )
            session.commit()

    def delete_subtitle(
        self, work_identity: str, source_lang: str, target_lang: str, original_key: str
    ) -> None:
        with Session(self.engine) as session:
            row = session.get(
                SubtitleTranslation, (work_identity, source_lang, target_lang, original_key)
            )
            if row is not None:
                session.delete(row)
                session.commit()

    def subtitle_row_count(self) -> int:
        with Session(self.engine) as session:
            return session.exec(select(func.count()).select_from(SubtitleTranslation)).one()

    def last_accessed_day(self, work_identity: str) -> int | None:
        with Session(self.engine) as session:
            meta = session.get(WorkMetadata, work_identity)
            return meta.last_accessed_day if meta else None

    def set_last_accessed_day(self, work_identity: str, day: int) -> None:
        with Session(self.engine) as session:
            session.merge(WorkMetadata(work_identity=work_identity, last_accessed_day=day))
            session.commit()

    def evict_works_before(self, cutoff_day: int) -> int:
        """Delete subtitles and metadata of works last accessed before ``cutoff_day``."""
        with Session(self.engine) as session:
            stale = session.exec(
                select(WorkMetadata.work_identity).where(
                    WorkMetadata.last_accessed_day < cutoff_day
                )
            ).all()
            if not stale:
                return 0
            session.execute(
                delete(SubtitleTranslation).where(SubtitleTranslation.work_identity.in_(stale))
            )
            session.execute(delete(WorkMetadata).where(WorkMetadata.work_identity.in_(stale)))
            session.commit()
            return len(stale)

    # -- words ------------------------------------------------------------

    def get_word(self, word: str, source_lang: str, target_lang: str) -> WordEntry | None:
        with Session(self.engine) as session:
            row = session.get(WordTranslation, (word, source_lang, target_lang))
            if row is None:
                return None
            return WordEntry(
                word=row.word,
                source_lang=row.source_lang,
                target_lang=row.target_lang,
                translation=row.translation,
                source=row.source,
                last_accessed_day=row.last_accessed_day,
            )

    def save_word(self, entry: WordEntry) -> None:
        with Session(self.engine) as session:
            session.merge(
                WordTranslation(
                    word=entry.word,
                    source_lang=entry.source_lang,
                    target_lang=entry.target_lang,
                    translation=entry.translation,
                    source=entry.source,
                    last_accessed_day=entry.last_accessed_day,
                )
            )
            session.commit()

    def delete_word(self, word: str, source_lang: str, target_lang: str) -> None:
        with Session(self.engine) as session:
            row = session.get(WordTranslation, (word, source_lang, target_lang))
            if row is not None:
                session.delete(row)
                session.commit()

    def word_count(self) -> int:
        with Session(self.engine) as session:
            return session.exec(select(func.count()).select_from(WordTranslation)).one()

    def clear_words(self) -> int:
        count = self.word_count()
        with Session(self.engine) as session:
            session.execute(delete(WordTranslation))
            session.commit()
        return count

    def evict_words_before(self, cutoff_day: int) -> int:
        with Session(self.engine) as session:
            result = session.execute(
                delete(WordTranslation).where(WordTranslation.last_accessed_day < cutoff_day)
            )
            session.commit()
            return result.rowcount or 0

    def close(self) -> None:
        self.engine.dispose()
