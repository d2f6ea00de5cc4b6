"""Local-first data sync core for the Track Anything habit tracker"""
