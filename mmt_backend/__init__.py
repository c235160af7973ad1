"""
Media Meta Tagger backend: capability classification, store adapters and the
metadata resolver, plus the HTTP and command line surfaces.
"""
