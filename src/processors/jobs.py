"""
Job submission, status and results.

Jobs are rows in the analysis_jobs table; the table is the only record of
their state. JobRunner executes them on a thread pool without the caller
waiting for them.
"""

import sys
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

from archive import validate_month
from db import Database, JobType, JobStatus
from db.export import job_to_dict, citation_to_dict, score_to_dict, summary_to_dict
from settings import JOB_WORKERS

RESULTS_CITATION_LIMIT = 1000


class InlineExecutor(Executor):
    """Executor that runs each task in the calling thread before submit returns."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class JobRunner:
    """Fire-and-forget execution of analysis jobs."""

    def __init__(self, pipeline_factory: Callable, max_workers: int = None, executor: Optional[Executor] = None):
        """
        Args:
            pipeline_factory: Callable returning an object with run(job_id)
            max_workers: Thread pool size (defaults to JOB_WORKERS)
            executor: Executor to use instead of a new thread pool
        """
        self.pipeline_factory = pipeline_factory
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers or JOB_WORKERS,
            thread_name_prefix='citation-job'
        )

    def _run(self, job_id: int) -> bool:
        return self.pipeline_factory().run(job_id)

    @staticmethod
    def _report(job_id: int, future: Future):
        error = future.exception()
        if error is not None:
            print(f"Job {job_id} crashed outside the pipeline: {error}", file=sys.stderr)

    def submit(self, job_id: int) -> Future:
        """Schedule a job and return immediately."""
        future = self.executor.submit(self._run, job_id)
        future.add_done_callback(lambda f: self._report(job_id, f))
        return future

    def shutdown(self, wait: bool = True):
        self.executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)


def normalize_domain(domain: str) -> str:
    """Lower-cased host without scheme, 'www.' or path."""
    domain = (domain or '').strip().lower()
    for prefix in ('https://', 'http://'):
        if domain.startswith(prefix):
            domain = domain[len(prefix):]
    domain = domain.split('/', 1)[0]
    if domain.startswith('www.'):
        domain = domain[4:]
    return domain


def validate_request(user_id: str, domain: str, months: List[str]):
    """
    Check analysis inputs.

    Returns:
        Tuple of (normalized domain, months)

    Raises:
        ValueError: If the user or domain is empty, or months is empty or
            contains an invalid 'YYYY-MM' value
    """
    if not user_id or not str(user_id).strip():
        raise ValueError("user_id is required")

    domain = normalize_domain(domain)
    if not domain:
        raise ValueError("domain is required")

    if not months or isinstance(months, str):
        raise ValueError("months must be a non-empty list of 'YYYY-MM' strings")
    months = [m.strip() for m in months]
    for month in months:
        validate_month(month)

    return domain, months


def _clean_filters(filters: Optional[Dict]) -> Optional[Dict]:
    if not filters:
        return None
    cleaned = {k: v for k, v in filters.items() if k in ('query_include', 'query_exclude') and v}
    return cleaned or None


def start_analysis(db: Database, runner: JobRunner, user_id: str, domain: str,
                   months: List[str], filters: Optional[Dict] = None) -> int:
    """
    Create an initial job in processing state and submit it.

    Returns:
        The new job id

    Raises:
        ValueError: On invalid input
    """
    domain, months = validate_request(user_id, domain, months)

    session = db.get_session()
    try:
        job = db.create_job(
            session, user_id, domain, months,
            job_type=JobType.INITIAL,
            status=JobStatus.PROCESSING,
            filters=_clean_filters(filters)
        )
        session.commit()
        job_id = job.id
    finally:
        session.close()

    runner.submit(job_id)
    return job_id


def create_competitor_job(db: Database, user_id: str, domain: str, months: List[str],
                          requested_by: str, runner: Optional[JobRunner] = None) -> int:
    """
    Create a pending competitor job, submitting it when a runner is given.

    Returns:
        The new job id
    """
    domain, months = validate_request(user_id, domain, months)

    session = db.get_session()
    try:
        job = db.create_job(
            session, user_id, domain, months,
            job_type=JobType.COMPETITOR,
            status=JobStatus.PENDING,
            competitor_domains=[requested_by]
        )
        session.commit()
        job_id = job.id
    finally:
        session.close()

    if runner is not None:
        runner.submit(job_id)
    return job_id


def get_status(db: Database, job_id: int, user_id: str = None) -> Dict:
    """
    Status, progress and totals of a job.

    Raises:
        LookupError: If the job doesn't exist (or belongs to another user)
    """
    session = db.get_session()
    try:
        job = db.get_job(session, job_id, user_id=user_id)
        if job is None:
            raise LookupError(f"Job {job_id} not found")
        return job_to_dict(job)
    finally:
        session.close()


def get_results(db: Database, job_id: int, user_id: str = None,
                limit: int = RESULTS_CITATION_LIMIT) -> Dict:
    """
    Job status plus its citations, scores and monthly summaries.

    The result lists are None until the job has completed.

    Raises:
        LookupError: If the job doesn't exist (or belongs to another user)
    """
    session = db.get_session()
    try:
        job = db.get_job(session, job_id, user_id=user_id)
        if job is None:
            raise LookupError(f"Job {job_id} not found")

        result = {
            'job': job_to_dict(job),
            'citations': None,
            'scores': None,
            'monthly_summaries': None,
        }
        if job.status != JobStatus.COMPLETED:
            return result

        citations = db.get_citations(session, job.domain, user_id=job.user_id, newest_first=True, limit=limit)
        result['citations'] = [citation_to_dict(c) for c in citations]
        result['scores'] = [score_to_dict(s) for s in db.get_citation_scores(session, job.domain, user_id=job.user_id)]
        result['monthly_summaries'] = [
            summary_to_dict(s) for s in db.get_monthly_summaries(session, job.domain, user_id=job.user_id)
        ]
        return result
    finally:
        session.close()


def list_jobs(db: Database, user_id: str = None, domain: str = None,
              status: JobStatus = None, limit: int = 20) -> List[Dict]:
    """Most recent jobs first."""
    session = db.get_session()
    try:
        domain = normalize_domain(domain) if domain else None
        return [job_to_dict(j) for j in db.list_jobs(session, user_id=user_id, domain=domain, status=status, limit=limit)]
    finally:
        session.close()


def create_runner(db: Database, executor: Optional[Executor] = None, max_workers: int = None,
                  **pipeline_options) -> JobRunner:
    """JobRunner whose jobs run a CitationPipeline over db."""
    from processors.orchestrator import CitationPipeline
    return JobRunner(lambda: CitationPipeline(db, **pipeline_options), max_workers=max_workers, executor=executor)
