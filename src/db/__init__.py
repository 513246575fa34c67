"""
Database package for citation analysis.
"""

from .models import Base, Job, JobType, JobStatus, Citation, CitationType, Sentiment, CrawlCacheEntry, CitationScore, MonthlyCitationSummary, LLMApiCall
from .database import Database

__all__ = ['Base', 'Job', 'JobType', 'JobStatus', 'Citation', 'CitationType', 'Sentiment', 'CrawlCacheEntry', 'CitationScore', 'MonthlyCitationSummary', 'LLMApiCall', 'Database']
