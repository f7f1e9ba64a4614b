"""
data/ — Bundled venue-ranking dataset for CCFRank.

Files:
  ccf_rankings.json — CCF conference/journal rankings (A, B, C, plus E/P tiers)
                      keyed by abbreviation and DBLP venue path
"""
