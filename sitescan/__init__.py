"""
SiteScan Analysis Service

Website auditing backend: accepts URLs, runs SEO/performance/security/accessibility
analyses through an in-process job queue with bounded concurrency and retries.
"""

__version__ = "2.0.0"
