"""Media Uploads: bounded-concurrency upload scheduler for form attachments."""

__version__ = "0.1.0"
