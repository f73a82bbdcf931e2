"""
Starter rollable tables a DM can drop into a new campaign.

    flask seed-tables CAMPAIGN_ID

Safe to re-run: tables the campaign already has (by name) are skipped.
"""

import logging

from taverna import db
from taverna.errors import NotFoundError
from taverna.models import Campaign, RollableTable

logger = logging.getLogger(__name__)


def _one_each(results):
    """Give every result its own face: 1, 2, 3, ..."""
    return [{'min': i, 'max': i, 'result': r} for i, r in enumerate(results, start=1)]


STARTER_TABLES = [
    {
        'name': 'NPC Names',
        'description': 'Fantasy given names for quick NPC generation.',
        'entries': _one_each([
            'Aldric', 'Brynn', 'Caius', 'Dara', 'Edwyn', 'Faye', 'Gareth',
            'Halla', 'Isarn', 'Jora', 'Kell', 'Liriel', 'Maeris', 'Nessa',
            'Oswin', 'Petra', 'Quillan', 'Reva', 'Saben', 'Talia',
        ]),
    },
    {
        'name': 'Weather',
        'description': 'Weather for overland travel or scene-setting. Roll d20.',
        'entries': [
            {'min': 1, 'max': 6, 'result': 'Clear skies, warm sun'},
            {'min': 7, 'max': 10, 'result': 'Overcast and grey'},
            {'min': 11, 'max': 13, 'result': 'Light drizzle'},
            {'min': 14, 'max': 15, 'result': 'Steady rain'},
            {'min': 16, 'max': 16, 'result': 'Dense fog, visibility under 30 feet'},
            {'min': 17, 'max': 17, 'result': 'Strong winds, difficult travel'},
            {'min': 18, 'max': 18, 'result': 'Cold snap, frost on the ground'},
            {'min': 19, 'max': 19, 'result': 'Thunderstorm with lightning'},
            {'min': 20, 'max': 20, 'result': 'Unnaturally still, not a breath of wind'},
        ],
    },
    {
        'name': 'Road Encounters',
        'description': 'Something the party meets on the road. Roll d12.',
        'entries': _one_each([
            'A merchant caravan with a broken wheel',
            'A patrol of soldiers, suspicious of the party',
            'A lone hermit who knows more than they let on',
            'A pack of wolves hunting nearby',
            'An abandoned campsite, still warm',
            'Refugees fleeing from the direction you are heading',
            'A bounty hunter tracking someone who looks like one of the party',
            'A river crossing where the bridge is out',
            'A child alone on the road, lost and frightened',
            'A friendly rival adventuring party',
            'Thick unnatural fog rolls in suddenly',
            'A roadside shrine, recently vandalized',
        ]),
    },
    {
        'name': 'Tavern Rumours',
        'description': 'Overheard at the bar. Roll d8.',
        'entries': _one_each([
            'The old mill is haunted, and the miller knows why',
            'A noble is quietly hiring sellswords',
            'Something has been taking sheep from the hill farms',
            'The temple treasury is short a golden chalice',
            'A map to a lost barrow is for sale, cheap',
            'The new captain of the guard takes bribes',
            'Lights were seen in the ruined tower last night',
            'The ferryman refuses to cross after dark',
        ]),
    },
]


def seed_tables(campaign_id, created_by=None):
    """Add the starter tables to a campaign. Returns (added, skipped) names."""
    campaign = db.session.get(Campaign, campaign_id)
    if campaign is None:
        raise NotFoundError('Campaign not found')

    existing = {t.name for t in RollableTable.query.filter_by(campaign_id=campaign.id)}
    added, skipped = [], []
    for table_data in STARTER_TABLES:
        if table_data['name'] in existing:
            skipped.append(table_data['name'])
            continue
        db.session.add(RollableTable(
            campaign_id=campaign.id,
            name=table_data['name'],
            description=table_data['description'],
            entries=[dict(e) for e in table_data['entries']],
            created_by=created_by if created_by is not None else campaign.dm_id,
        ))
        added.append(table_data['name'])

    db.session.commit()
    logger.info('Seeded %d starter table(s) into campaign %s', len(added), campaign.id)
    return added, skipped
