"""Blob store adapters (local upload directory, S3)"""
