"""
Tests for the DM's campaign notebook: NPCs, encounter templates and the
story timeline.
"""

import pytest

from taverna.models import EncounterTemplate, NPC, TimelineEvent

GOBLINS = [
    {'name': 'Goblin', 'cr': 0.25, 'count': 4, 'hp': 7, 'ac': 15},
    {'name': 'Goblin Boss', 'cr': 1, 'count': 1, 'hp': 21, 'ac': 17},
]


def post(client, url, body):
    resp = client.post(url, json=body)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()['data']


class TestNPCs:
    def test_members_read_dm_writes(self, dm, player, outsider, campaign):
        cid = campaign['id']
        npc = post(dm, f'/api/campaigns/{cid}/npcs', {
            'name': 'Mira Blackwater', 'race': 'Half-elf', 'stats': {'STR': 10, 'CHA': 16},
            'hp': 22, 'location': 'The Drowned Rat',
        })
        assert npc['isAlive'] is True
        assert npc['stats'] == {'STR': 10, 'CHA': 16}

        assert player.get(f'/api/npcs/{npc["id"]}').status_code == 200
        assert outsider.get(f'/api/npcs/{npc["id"]}').status_code == 403
        assert player.post(f'/api/campaigns/{cid}/npcs', json={'name': 'Me'}).status_code == 403
        assert player.patch(f'/api/npcs/{npc["id"]}', json={'isAlive': False}).status_code == 403
        assert player.delete(f'/api/npcs/{npc["id"]}').status_code == 403

    def test_listed_by_name(self, dm, player, campaign):
        cid = campaign['id']
        for name in ('Zed', 'Alba', 'Mira'):
            post(dm, f'/api/campaigns/{cid}/npcs', {'name': name})
        names = [n['name'] for n in player.get(f'/api/campaigns/{cid}/npcs').get_json()['data']]
        assert names == ['Alba', 'Mira', 'Zed']

    def test_update_and_clear(self, dm, campaign):
        npc = post(dm, f'/api/campaigns/{campaign["id"]}/npcs',
                   {'name': 'Old Tom', 'location': 'Mill', 'hp': 9})
        data = dm.patch(f'/api/npcs/{npc["id"]}',
                        json={'isAlive': False, 'location': None, 'name': None}).get_json()['data']
        assert data['isAlive'] is False
        assert data['location'] is None
        # name is required, so a null leaves it alone
        assert data['name'] == 'Old Tom'
        assert data['hp'] == 9

    def test_invalid(self, dm, campaign):
        url = f'/api/campaigns/{campaign["id"]}/npcs'
        assert dm.post(url, json={'name': ''}).status_code == 400
        assert dm.post(url, json={'name': 'Ogre', 'armorClass': 99}).status_code == 400

    def test_delete_and_cascade(self, app, dm, campaign):
        cid = campaign['id']
        first = post(dm, f'/api/campaigns/{cid}/npcs', {'name': 'Alba'})
        post(dm, f'/api/campaigns/{cid}/npcs', {'name': 'Zed'})
        assert dm.delete(f'/api/npcs/{first["id"]}').status_code == 200
        assert dm.get(f'/api/npcs/{first["id"]}').status_code == 404

        dm.delete(f'/api/campaigns/{cid}')
        with app.app_context():
            assert NPC.query.count() == 0


class TestEncounters:
    def test_dm_only_even_for_reads(self, dm, player, campaign):
        cid = campaign['id']
        encounter = post(dm, f'/api/campaigns/{cid}/encounters',
                         {'name': 'Goblin Ambush', 'monsters': GOBLINS, 'difficulty': 'hard'})
        assert encounter['monsterCount'] == 5
        assert encounter['createdBy'] == dm.user_id

        assert player.get(f'/api/campaigns/{cid}/encounters').status_code == 403
        assert player.get(f'/api/encounters/{encounter["id"]}').status_code == 403
        assert dm.get(f'/api/encounters/{encounter["id"]}').get_json()['data']['monsters'] == GOBLINS

    def test_defaults(self, dm, campaign):
        encounter = post(dm, f'/api/campaigns/{campaign["id"]}/encounters',
                         {'name': 'Wolves', 'monsters': [{'name': 'Wolf', 'cr': 0.25, 'hp': 11, 'ac': 13}]})
        assert encounter['difficulty'] == 'medium'
        assert encounter['xpTotal'] == 0
        assert encounter['monsters'][0]['count'] == 1

    @pytest.mark.parametrize('body', [
        {'name': 'No monsters'},
        {'name': 'Bad difficulty', 'monsters': GOBLINS, 'difficulty': 'impossible'},
        {'name': 'Zero goblins', 'monsters': [dict(GOBLINS[0], count=0)]},
    ])
    def test_invalid(self, dm, campaign, body):
        resp = dm.post(f'/api/campaigns/{campaign["id"]}/encounters', json=body)
        assert resp.status_code == 400

    def test_update_replaces_monsters(self, dm, campaign):
        encounter = post(dm, f'/api/campaigns/{campaign["id"]}/encounters',
                         {'name': 'Goblin Ambush', 'monsters': GOBLINS})
        data = dm.patch(f'/api/encounters/{encounter["id"]}', json={
            'monsters': GOBLINS[:1], 'xpTotal': 200, 'difficulty': 'easy',
        }).get_json()['data']
        assert data['monsters'] == GOBLINS[:1]
        assert (data['xpTotal'], data['difficulty'], data['monsterCount']) == (200, 'easy', 4)
        assert data['name'] == 'Goblin Ambush'

    def test_delete(self, app, dm, player, campaign):
        encounter = post(dm, f'/api/campaigns/{campaign["id"]}/encounters',
                         {'name': 'Goblin Ambush', 'monsters': GOBLINS})
        assert player.delete(f'/api/encounters/{encounter["id"]}').status_code == 403
        assert dm.delete(f'/api/encounters/{encounter["id"]}').status_code == 200
        with app.app_context():
            assert EncounterTemplate.query.count() == 0


class TestTimeline:
    def test_events_read_oldest_first(self, dm, player, campaign):
        cid = campaign['id']
        post(dm, f'/api/campaigns/{cid}/timeline', {'title': 'The party meets', 'sessionNumber': 1})
        post(dm, f'/api/campaigns/{cid}/timeline',
             {'title': 'Bram falls', 'type': 'death', 'inGameDate': '3rd of Frostmoon', 'sessionNumber': 2})

        events = player.get(f'/api/campaigns/{cid}/timeline').get_json()['data']
        assert [e['title'] for e in events] == ['The party meets', 'Bram falls']
        assert events[0]['type'] == 'story'
        assert events[1]['inGameDate'] == '3rd of Frostmoon'
        assert events[1]['realDate'] is not None

    def test_only_dm_edits(self, dm, player, outsider, campaign):
        cid = campaign['id']
        event = post(dm, f'/api/campaigns/{cid}/timeline', {'title': 'Dragon sighted'})
        assert outsider.get(f'/api/campaigns/{cid}/timeline').status_code == 403
        assert player.post(f'/api/campaigns/{cid}/timeline', json={'title': 'x'}).status_code == 403
        assert player.patch(f'/api/timeline/{event["id"]}', json={'title': 'x'}).status_code == 403
        assert player.delete(f'/api/timeline/{event["id"]}').status_code == 403

    def test_update(self, dm, campaign):
        event = post(dm, f'/api/campaigns/{campaign["id"]}/timeline',
                     {'title': 'Dragon sighted', 'icon': '🐉', 'inGameDate': 'Spring'})
        data = dm.patch(f'/api/timeline/{event["id"]}',
                        json={'type': 'milestone', 'inGameDate': None}).get_json()['data']
        assert data['type'] == 'milestone'
        assert data['inGameDate'] is None
        assert data['icon'] == '🐉'

    def test_invalid_type(self, dm, campaign):
        resp = dm.post(f'/api/campaigns/{campaign["id"]}/timeline',
                       json={'title': 'Party', 'type': 'festival'})
        assert resp.status_code == 400

    def test_delete(self, app, dm, campaign):
        event = post(dm, f'/api/campaigns/{campaign["id"]}/timeline', {'title': 'Dragon sighted'})
        assert dm.delete(f'/api/timeline/{event["id"]}').status_code == 200
        assert dm.patch(f'/api/timeline/{event["id"]}', json={'title': 'x'}).status_code == 404
        with app.app_context():
            assert TimelineEvent.query.count() == 0
