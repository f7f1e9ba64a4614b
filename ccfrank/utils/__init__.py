"""
utils/ — Ranking table, response cache, logging and citation text helpers.
"""
