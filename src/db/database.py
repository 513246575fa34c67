"""
Database connection and operations.
"""

from pathlib import Path
from datetime import datetime, date
from typing import Dict, Iterable, List, Optional
from sqlalchemy import create_engine
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import sessionmaker, Session
from .models import Base, Job, JobType, JobStatus, Citation, CrawlCacheEntry, CitationScore, MonthlyCitationSummary

CITATION_KEY = ('user_id', 'domain', 'source_url', 'citation_text')
MONTHLY_KEY = ('user_id', 'domain', 'month')


class Database:
    """Keyed store for jobs, citations, crawl cache and monthly rollups."""

    def __init__(self, db_path: str = None):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file (defaults to DATABASE_PATH setting)
        """
        if db_path is None:
            from settings import DATABASE_PATH
            db_path = DATABASE_PATH

        # Ensure data directory exists
        db_file = Path(db_path)
        db_file.parent.mkdir(parents=True, exist_ok=True)

        self.db_path = db_path
        # Jobs run on worker threads, each with its own session
        self.engine = create_engine(
            f'sqlite:///{db_path}',
            echo=False,
            connect_args={'check_same_thread': False, 'timeout': 30}
        )
        self.SessionLocal = sessionmaker(bind=self.engine)

        # Create tables if they don't exist
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    def _upsert(self, session: Session, model, values: Dict, key_columns: Iterable[str]):
        """Insert a row or overwrite the non-key columns of the row sharing its natural key."""
        key_columns = list(key_columns)
        stmt = insert(model).values(**values)
        update_columns = {
            name: stmt.excluded[name]
            for name in values
            if name not in key_columns
        }
        if hasattr(model, 'updated_at'):
            update_columns['updated_at'] = datetime.utcnow()
        stmt = stmt.on_conflict_do_update(index_elements=key_columns, set_=update_columns)
        session.execute(stmt)

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def create_job(
        self,
        session: Session,
        user_id: str,
        domain: str,
        months: List[str],
        job_type: JobType = JobType.INITIAL,
        status: JobStatus = JobStatus.PENDING,
        filters: Optional[Dict] = None,
        competitor_domains: Optional[List[str]] = None
    ) -> Job:
        """
        Create a job row. Jobs created as PROCESSING get their start time immediately.

        Returns:
            Job object (flushed, with ID)
        """
        job = Job(
            user_id=user_id,
            domain=domain,
            job_type=job_type,
            status=status,
            crawl_months=list(months),
            filters=filters or None,
            competitor_domains=competitor_domains,
            progress=0,
            total_citations=0,
            started_at=datetime.utcnow() if status == JobStatus.PROCESSING else None
        )
        session.add(job)
        session.flush()
        return job

    def get_job(self, session: Session, job_id: int, user_id: str = None) -> Optional[Job]:
        """Get job by ID, optionally scoped to its owner."""
        query = session.query(Job).filter_by(id=job_id)
        if user_id:
            query = query.filter_by(user_id=user_id)
        return query.first()

    def list_jobs(self, session: Session, user_id: str = None, domain: str = None,
                  status: JobStatus = None, limit: int = 20) -> List[Job]:
        """Most recent jobs first."""
        query = session.query(Job)
        if user_id:
            query = query.filter(Job.user_id == user_id)
        if domain:
            query = query.filter(Job.domain == domain)
        if status:
            query = query.filter(Job.status == status)
        return query.order_by(Job.created_at.desc(), Job.id.desc()).limit(limit).all()

    def update_job_progress(self, session: Session, job: Job, progress: int, total_citations: int = None):
        """Raise job progress; progress never goes backwards."""
        job.progress = max(job.progress or 0, min(int(progress), 100))
        if total_citations is not None:
            job.total_citations = total_citations
        session.commit()

    # ------------------------------------------------------------------
    # Citations
    # ------------------------------------------------------------------

    def upsert_citation(self, session: Session, citation_data: Dict) -> Citation:
        """
        Save a citation, merging into the existing row with the same identity.

        Identity: (user_id, domain, source_url, citation_text).

        Returns:
            The stored Citation object
        """
        self._upsert(session, Citation, citation_data, CITATION_KEY)
        return (session.query(Citation)
                .filter_by(**{key: citation_data[key] for key in CITATION_KEY})
                .populate_existing()
                .one())

    def get_citations(
        self,
        session: Session,
        domain: str,
        user_id: str = None,
        start: date = None,
        end: date = None,
        newest_first: bool = False,
        limit: int = None
    ) -> List[Citation]:
        """
        Get citations for a domain.

        Args:
            start: Inclusive lower bound on crawl_date
            end: Exclusive upper bound on crawl_date
        """
        query = session.query(Citation).filter(Citation.domain == domain)
        if user_id:
            query = query.filter(Citation.user_id == user_id)
        if start:
            query = query.filter(Citation.crawl_date >= start)
        if end:
            query = query.filter(Citation.crawl_date < end)
        if newest_first:
            query = query.order_by(Citation.crawl_date.desc(), Citation.id.desc())
        else:
            query = query.order_by(Citation.id)
        if limit:
            query = query.limit(limit)
        return query.all()

    def has_citations(self, session: Session, domain: str, user_id: str = None) -> bool:
        """Check whether any citation is stored for the domain."""
        query = session.query(Citation.id).filter(Citation.domain == domain)
        if user_id:
            query = query.filter(Citation.user_id == user_id)
        return query.first() is not None

    # ------------------------------------------------------------------
    # Crawl cache
    # ------------------------------------------------------------------

    def get_crawl_cache(self, session: Session, domain: str, month: str) -> Optional[CrawlCacheEntry]:
        """Get the scan marker for a (domain, month) pair."""
        return session.query(CrawlCacheEntry).filter_by(domain=domain, crawl_month=month).first()

    def save_crawl_cache(self, session: Session, domain: str, month: str,
                         records_considered: int, index_id: str = None):
        """Record a (domain, month) pair as scanned. Existing markers are left untouched."""
        stmt = insert(CrawlCacheEntry).values(
            domain=domain,
            crawl_month=month,
            index_id=index_id,
            records_considered=records_considered,
            created_at=datetime.utcnow()
        ).on_conflict_do_nothing(index_elements=['domain', 'crawl_month'])
        session.execute(stmt)

    def list_crawl_cache(self, session: Session, domain: str = None, limit: int = 20) -> List[CrawlCacheEntry]:
        """Most recent cache markers first."""
        query = session.query(CrawlCacheEntry)
        if domain:
            query = query.filter_by(domain=domain)
        query = query.order_by(CrawlCacheEntry.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def clear_crawl_cache(self, session: Session, domain: str = None, month: str = None) -> int:
        """
        Delete cache markers so the next analysis re-scans the archive.

        Returns:
            Number of entries deleted
        """
        query = session.query(CrawlCacheEntry)
        if domain:
            query = query.filter_by(domain=domain)
        if month:
            query = query.filter_by(crawl_month=month)
        count = query.delete(synchronize_session=False)
        session.commit()
        return count

    # ------------------------------------------------------------------
    # Monthly rollups
    # ------------------------------------------------------------------

    def upsert_citation_score(self, session: Session, score_data: Dict):
        """Insert or overwrite the CitationScore row for (user_id, domain, month)."""
        self._upsert(session, CitationScore, score_data, MONTHLY_KEY)

    def upsert_monthly_summary(self, session: Session, summary_data: Dict):
        """Insert or overwrite the MonthlyCitationSummary row for (user_id, domain, month)."""
        self._upsert(session, MonthlyCitationSummary, summary_data, MONTHLY_KEY)

    def delete_monthly_rollups(self, session: Session, user_id: str, domain: str, month: str) -> int:
        """Drop the CitationScore and MonthlyCitationSummary rows of a month. Returns rows deleted."""
        deleted = 0
        for model in (CitationScore, MonthlyCitationSummary):
            deleted += session.query(model).filter_by(
                user_id=user_id, domain=domain, month=month
            ).delete(synchronize_session=False)
        return deleted

    def get_citation_scores(self, session: Session, domain: str, user_id: str = None) -> List[CitationScore]:
        """Monthly scores for a domain, oldest month first."""
        query = session.query(CitationScore).filter(CitationScore.domain == domain)
        if user_id:
            query = query.filter(CitationScore.user_id == user_id)
        return query.order_by(CitationScore.month).all()

    def get_monthly_summaries(self, session: Session, domain: str, user_id: str = None) -> List[MonthlyCitationSummary]:
        """Monthly counts for a domain, oldest month first."""
        query = session.query(MonthlyCitationSummary).filter(MonthlyCitationSummary.domain == domain)
        if user_id:
            query = query.filter(MonthlyCitationSummary.user_id == user_id)
        return query.order_by(MonthlyCitationSummary.month).all()
