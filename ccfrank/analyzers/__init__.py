"""
analyzers/ — DBLP search client, candidate selection and rank resolution.
"""
