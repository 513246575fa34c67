"""
Citation analysis pipeline.

Drives one job through its stages:

1. Crawl each requested month (cache-aware), progress 0-50
2. Extract topics once over all citations
3. Classify sentiment, progress 50-100
4. Write sentiment and topics back onto the citations
5. Upsert monthly scores and summaries
6. Mark the job completed

A failing month is skipped. Any other exception marks the job failed with
the exception message; citations already stored are kept.
"""

import sys
import time
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from archive import ArchiveIndexClient, ContentFetcher
from db import Database, Job, JobStatus
from domain.citation_score import round_half_up
from llm.classifier import TextClassifier, OpenAIClassifier
from processors.aggregate import aggregate_months
from processors.classify import extract_topics, classify_sentiments
from processors.crawl import crawl_month
from settings import (
    MAX_RECORDS_PER_MONTH, RECORD_FETCH_DELAY, CLASSIFIER_DELAY,
    SENTIMENT_SAMPLE_LIMIT, TOPIC_SAMPLE_LIMIT
)

CRAWL_PROGRESS_SHARE = 50


class CitationPipeline:
    """Runs analysis jobs against the archive, the classifier and the store."""

    def __init__(
        self,
        db: Database,
        index_client: Optional[ArchiveIndexClient] = None,
        fetcher: Optional[ContentFetcher] = None,
        classifier: Optional[TextClassifier] = None,
        max_records: int = MAX_RECORDS_PER_MONTH,
        record_delay: float = RECORD_FETCH_DELAY,
        classifier_delay: float = CLASSIFIER_DELAY,
        sentiment_limit: int = SENTIMENT_SAMPLE_LIMIT,
        topic_limit: int = TOPIC_SAMPLE_LIMIT,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Args:
            db: Database
            index_client: Archive index client (created on demand)
            fetcher: Archive content fetcher (created on demand)
            classifier: Text classifier; when None, each job gets an
                OpenAIClassifier tagged with the job's id and domain
            sleep: Pacing function shared by all stages
        """
        self.db = db
        self.index_client = index_client or ArchiveIndexClient(sleep=sleep)
        self.fetcher = fetcher or ContentFetcher()
        self.classifier = classifier
        self.max_records = max_records
        self.record_delay = record_delay
        self.classifier_delay = classifier_delay
        self.sentiment_limit = sentiment_limit
        self.topic_limit = topic_limit
        self.sleep = sleep

    def _classifier_for(self, job: Job) -> TextClassifier:
        if self.classifier is not None:
            return self.classifier
        return OpenAIClassifier(context_data={'job_id': job.id, 'domain': job.domain, 'user_id': job.user_id})

    def run(self, job_id: int) -> bool:
        """
        Run a job to completion or failure.

        Pending jobs are moved to processing first. Jobs already in a terminal
        state are left alone.

        Returns:
            True if the job completed
        """
        session = self.db.get_session()
        try:
            job = self.db.get_job(session, job_id)
            if job is None:
                print(f"Job {job_id} not found", file=sys.stderr)
                return False

            if job.status in (JobStatus.COMPLETED, JobStatus.FAILED):
                print(f"Job {job_id} already {job.status.value}, skipping", file=sys.stderr)
                return job.status == JobStatus.COMPLETED

            if job.status == JobStatus.PENDING:
                job.status = JobStatus.PROCESSING
                job.started_at = datetime.utcnow()
                session.commit()
            elif job.started_at is None:
                job.started_at = datetime.utcnow()
                session.commit()

            try:
                self._process(session, job)
                return True
            except Exception as e:
                session.rollback()
                job.status = JobStatus.FAILED
                job.error_message = str(e)
                session.commit()
                print(f"Job {job_id} failed: {e}", file=sys.stderr)
                return False
        finally:
            session.close()

    def _crawl(self, session: Session, job: Job) -> List:
        months = list(job.crawl_months or [])
        citations = []
        seen_ids = set()

        for i, month in enumerate(months, 1):
            try:
                found = crawl_month(
                    session, self.db, job.user_id, job.domain, month,
                    self.index_client, self.fetcher,
                    filters=job.filters,
                    max_records=self.max_records,
                    record_delay=self.record_delay,
                    sleep=self.sleep
                )
            except Exception as e:
                session.rollback()
                print(f"Warning: Job {job.id}: skipping month {month}: {e}", file=sys.stderr)
                found = []

            for citation in found:
                if citation.id not in seen_ids:
                    seen_ids.add(citation.id)
                    citations.append(citation)

            progress = round_half_up(i / len(months) * CRAWL_PROGRESS_SHARE)
            self.db.update_job_progress(session, job, progress, total_citations=len(citations))

        return citations

    def _process(self, session: Session, job: Job):
        print(f"Job {job.id}: analyzing {job.domain} for {', '.join(job.crawl_months or [])}")

        citations = self._crawl(session, job)
        print(f"Job {job.id}: {len(citations)} citations collected")

        classifier = self._classifier_for(job)
        topics = extract_topics(citations, classifier, limit=self.topic_limit)

        def on_progress(percent):
            self.db.update_job_progress(session, job, CRAWL_PROGRESS_SHARE + round_half_up(percent / 2))

        sentiments = classify_sentiments(
            citations, classifier,
            progress_callback=on_progress,
            limit=self.sentiment_limit,
            delay=self.classifier_delay,
            sleep=self.sleep
        )

        for citation, sentiment in zip(citations, sentiments):
            citation.sentiment = sentiment
            citation.topics = topics
        session.commit()

        aggregate_months(session, self.db, job.user_id, job.domain, job.crawl_months or [], citations, topics)

        job.status = JobStatus.COMPLETED
        job.progress = 100
        job.total_citations = len(citations)
        job.completed_at = datetime.utcnow()
        job.error_message = None
        session.commit()
        print(f"Job {job.id}: completed with {len(citations)} citations")


def run_job(job_id: int, db: Database, index_client: Optional[ArchiveIndexClient] = None,
            fetcher: Optional[ContentFetcher] = None, classifier: Optional[TextClassifier] = None,
            **options) -> bool:
    """Run one job with a pipeline built from the given collaborators."""
    pipeline = CitationPipeline(db, index_client=index_client, fetcher=fetcher, classifier=classifier, **options)
    return pipeline.run(job_id)
