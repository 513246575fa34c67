"""
SQLAlchemy models for citation analysis.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, Date, Boolean, Enum, JSON, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


class JobType(enum.Enum):
    """Kinds of analysis jobs."""
    INITIAL = "initial"        # Requested directly for the user's own domain
    COMPETITOR = "competitor"  # Created by the competitor comparison for a domain without data


class JobStatus(enum.Enum):
    """Lifecycle states of an analysis job."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"    # Terminal
    FAILED = "failed"          # Terminal


class CitationType(enum.Enum):
    """How the target domain is referenced."""
    LINK = "link"          # Anchor element whose href points at the domain
    MENTION = "mention"    # Plain-text occurrence of the domain


class Sentiment(enum.Enum):
    """Sentiment of the text surrounding a citation."""
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class Job(Base):
    """One end-to-end citation analysis run for a domain."""
    __tablename__ = 'analysis_jobs'

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    domain = Column(String(255), nullable=False, index=True)
    job_type = Column(Enum(JobType), nullable=False, default=JobType.INITIAL, index=True)
    status = Column(Enum(JobStatus), nullable=False, default=JobStatus.PENDING, index=True)
    crawl_months = Column(JSON, nullable=False)  # ['YYYY-MM', ...] in processing order
    filters = Column(JSON, nullable=True)  # {'query_include': str, 'query_exclude': str}
    competitor_domains = Column(JSON, nullable=True)  # For competitor jobs: the requesting domain(s)
    progress = Column(Integer, nullable=False, default=0)  # 0-100
    total_citations = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_analysis_jobs_user_domain', 'user_id', 'domain'),
    )

    def __repr__(self):
        return f"<Job(id={self.id}, domain='{self.domain}', type={self.job_type.value}, status={self.status.value}, progress={self.progress})>"


class Citation(Base):
    """A link to or mention of a domain found in archived third-party content."""
    __tablename__ = 'citations'

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False)
    domain = Column(String(255), nullable=False)  # Target domain being analyzed
    source_url = Column(String(2048), nullable=False)
    source_domain = Column(String(255), nullable=False, default='', index=True)
    citation_type = Column(Enum(CitationType), nullable=False, index=True)
    citation_text = Column(Text, nullable=False)  # Raw matched substring (full anchor markup for links)
    anchor_text = Column(Text, nullable=True)  # Links only
    target_url = Column(Text, nullable=True)  # Links only
    context_before = Column(Text, nullable=True)
    context_after = Column(Text, nullable=True)
    is_dofollow = Column(Boolean, nullable=True)  # Links only, NULL for mentions
    crawl_date = Column(Date, nullable=False, index=True)  # 15th of the represented month
    sentiment = Column(Enum(Sentiment), nullable=False, default=Sentiment.NEUTRAL, index=True)
    topics = Column(JSON, nullable=True)  # Shared topic labels of the job run
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'domain', 'source_url', 'citation_text', name='uq_citation_identity'),
        Index('idx_citations_user_domain_date', 'user_id', 'domain', 'crawl_date'),
    )

    def __repr__(self):
        return f"<Citation(id={self.id}, domain='{self.domain}', type={self.citation_type.value}, source='{self.source_domain}')>"


class CrawlCacheEntry(Base):
    """Marks a (domain, month) pair whose archive records were already scanned."""
    __tablename__ = 'crawl_cache'

    id = Column(Integer, primary_key=True)
    domain = Column(String(255), nullable=False)
    crawl_month = Column(String(7), nullable=False)  # 'YYYY-MM'
    index_id = Column(String(64), nullable=True)  # Archive index the month resolved to
    records_considered = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint('domain', 'crawl_month', name='uq_crawl_cache_domain_month'),
    )

    def __repr__(self):
        return f"<CrawlCacheEntry(domain='{self.domain}', month='{self.crawl_month}', records={self.records_considered})>"


class CitationScore(Base):
    """Monthly citation rollup with composite authority score."""
    __tablename__ = 'citation_scores'

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False)
    domain = Column(String(255), nullable=False)
    month = Column(String(7), nullable=False)  # 'YYYY-MM'
    total_citations = Column(Integer, nullable=False, default=0)
    link_count = Column(Integer, nullable=False, default=0)
    mention_count = Column(Integer, nullable=False, default=0)
    unique_domains = Column(Integer, nullable=False, default=0)
    sentiment_positive = Column(Integer, nullable=False, default=0)
    sentiment_neutral = Column(Integer, nullable=False, default=0)
    sentiment_negative = Column(Integer, nullable=False, default=0)
    top_topics = Column(JSON, nullable=True)
    citation_score = Column(Integer, nullable=False, default=0)  # 0-100
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'domain', 'month', name='uq_citation_scores_user_domain_month'),
    )

    def __repr__(self):
        return f"<CitationScore(domain='{self.domain}', month='{self.month}', score={self.citation_score})>"


class MonthlyCitationSummary(Base):
    """Light monthly counts used for trend charts."""
    __tablename__ = 'monthly_citations'

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False)
    domain = Column(String(255), nullable=False)
    month = Column(String(7), nullable=False)
    citation_count = Column(Integer, nullable=False, default=0)
    link_count = Column(Integer, nullable=False, default=0)
    mention_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'domain', 'month', name='uq_monthly_citations_user_domain_month'),
    )

    def __repr__(self):
        return f"<MonthlyCitationSummary(domain='{self.domain}', month='{self.month}', count={self.citation_count})>"


class LLMApiCall(Base):
    """Log of LLM API calls for monitoring, debugging, and cost tracking."""
    __tablename__ = 'llm_api_calls'

    id = Column(Integer, primary_key=True)

    # Metadata of the call
    call_type = Column(String(50), nullable=False, index=True)  # 'structured_output', 'chat_completion', etc.
    task_name = Column(String(100), nullable=True, index=True)  # 'sentiment_classification', 'topic_extraction', etc.
    model = Column(String(50), nullable=False, index=True)

    # Timing
    started_at = Column(DateTime, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_ms = Column(Integer, nullable=True)

    # Tokens
    input_tokens = Column(Integer, nullable=True)
    output_tokens = Column(Integer, nullable=True)
    total_tokens = Column(Integer, nullable=True)

    # Prompts and response
    system_prompt = Column(Text, nullable=True)
    user_prompt = Column(Text, nullable=True)
    response_raw = Column(JSON, nullable=True)  # Full OpenAI response object (NULL when the call failed)
    parsed_output = Column(JSON, nullable=True)

    # Status and errors
    success = Column(Integer, nullable=False, default=1, index=True)  # 1=success, 0=error
    error_message = Column(Text, nullable=True)

    # Context metadata (job_id, domain, ...)
    context_data = Column(JSON, nullable=True)

    __table_args__ = (
        Index('idx_llm_api_calls_task_model', 'task_name', 'model'),
    )

    def __repr__(self):
        status = 'success' if self.success else 'error'
        duration = f"{self.duration_ms}ms" if self.duration_ms else 'N/A'
        return f"<LLMApiCall(id={self.id}, type={self.call_type}, task={self.task_name}, model={self.model}, status={status}, duration={duration})>"
