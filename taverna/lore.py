"""Lore wiki helpers: slugs and Markdown rendering with [[wiki-links]]."""

import re
import time

import markdown as _md

from taverna.models import LoreEntry

WIKI_LINK_RE = re.compile(r'\[\[([^\]]+)\]\]')


def slugify(title):
    """'The Sunken Keep!' -> 'the-sunken-keep'"""
    slug = re.sub(r'[^a-z0-9]+', '-', title.lower()).strip('-')
    return slug or f'entry-{int(time.time())}'


def unique_slug(campaign_id, title, exclude_id=None):
    """slugify(title), with -2, -3, ... appended until it's free in this campaign."""
    base = slugify(title)
    slug = base
    suffix = 2
    while True:
        query = LoreEntry.query.filter_by(campaign_id=campaign_id, slug=slug)
        if exclude_id is not None:
            query = query.filter(LoreEntry.id != exclude_id)
        if query.first() is None:
            return slug
        slug = f'{base}-{suffix}'
        suffix += 1


def _convert_wiki_links(text, entries_by_slug):
    """Convert [[wiki-links]] to Markdown links to sibling entries.

    Handles two forms:
      [[Target]]           -> [Target](/lore/<id>)
      [[Target|Display]]   -> [Display](/lore/<id>)

    Targets are matched by slug, so [[the sunken keep]] finds
    "The Sunken Keep". Links that don't resolve show as bold text so
    they're still readable.
    """
    linked = []

    def replace_link(match):
        inner = match.group(1)
        if '|' in inner:
            target, display = inner.split('|', 1)
        else:
            target = display = inner
        target, display = target.strip(), display.strip()

        entry = entries_by_slug.get(slugify(target))
        if entry is None:
            return f'**{display}**'
        if entry.id not in linked:
            linked.append(entry.id)
        return f'[{display}](/lore/{entry.id})'

    return WIKI_LINK_RE.sub(replace_link, text or ''), linked


def render_lore(entry, is_dm):
    """Render an entry's Markdown to HTML. Returns (html, linked_entry_ids).

    Secret entries only resolve as links for the DM; for players they
    render like any other unknown page.
    """
    query = LoreEntry.query.filter_by(campaign_id=entry.campaign_id)
    if not is_dm:
        query = query.filter_by(is_secret=False)
    entries_by_slug = {e.slug: e for e in query.all()}

    text, linked = _convert_wiki_links(entry.content, entries_by_slug)
    html = _md.markdown(text, extensions=['nl2br', 'tables', 'fenced_code'])
    return html, linked
