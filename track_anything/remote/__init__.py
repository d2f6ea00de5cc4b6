"""Remote data source (backend tables)"""
from track_anything.remote.base import RemoteDataSource, Row
from track_anything.remote.supabase import SupabaseDataSource

__all__ = ["RemoteDataSource", "Row", "SupabaseDataSource"]
