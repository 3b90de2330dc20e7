"""
Search engine surfaces: sitemap partitioning, sitemap XML and robots.txt.
"""
