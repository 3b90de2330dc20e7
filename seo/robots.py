"""
robots.txt for the public site
"""

from typing import List, Sequence

DISALLOWED_PATHS = ("/api/", "/search", "/admin/")

# Crawlers used for AI training are kept out entirely
BLOCKED_AGENTS = ("GPTBot", "ChatGPT-User", "CCBot")


def render_robots_txt(
    site_url: str,
    disallowed: Sequence[str] = DISALLOWED_PATHS,
    blocked_agents: Sequence[str] = BLOCKED_AGENTS
) -> str:
    lines: List[str] = ["User-agent: *", "Allow: /"]
    lines.extend(f"Disallow: {path}" for path in disallowed)

    for agent in blocked_agents:
        lines.extend(["", f"User-agent: {agent}", "Disallow: /"])

    lines.extend(["", f"Sitemap: {site_url.rstrip('/')}/sitemap.xml", ""])
    return "\n".join(lines)
