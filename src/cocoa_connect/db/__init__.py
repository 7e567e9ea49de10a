"""
Cocoa Connect - Database access.

Supabase client plus the RecordStore seam the onboarding core talks to.
"""

from cocoa_connect.db.client import get_client, get_service_client
from cocoa_connect.db.store import MemoryRecordStore, RecordStore, SupabaseRecordStore

__all__ = [
    "get_client",
    "get_service_client",
    "MemoryRecordStore",
    "RecordStore",
    "SupabaseRecordStore",
]
