"""Provision an ACM certificate, an S3 bucket and the CloudFront stack for a static site."""

__version__ = "0.1.0"
