"""
Tests for map scenes (fog, tokens, drawings), free dice and rollable tables.
"""

from taverna import db, dice
from taverna.models import RollableTable
from taverna.starter_tables import STARTER_TABLES, seed_tables


def make_scene(dm, campaign_id, **extra):
    body = {'name': 'Goblin Cave', 'width': 6, 'height': 5}
    body.update(extra)
    resp = dm.post(f'/api/campaigns/{campaign_id}/scenes', json=body)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()['data']


class TestScenes:
    def test_new_scene_is_fully_fogged(self, dm, campaign):
        scene = make_scene(dm, campaign['id'])
        fog = scene['fogRevealed']
        assert len(fog) == 5
        assert all(len(row) == 6 and not any(row) for row in fog)

    def test_only_dm_edits(self, dm, player, campaign):
        scene = make_scene(dm, campaign['id'])
        assert player.post(f'/api/campaigns/{campaign["id"]}/scenes', json={'name': 'Mine'}).status_code == 403
        assert player.patch(f'/api/scenes/{scene["id"]}', json={'name': 'Mine'}).status_code == 403
        assert player.post(f'/api/scenes/{scene["id"]}/fog', json={'cells': []}).status_code == 403

    def test_player_fog_reveal_changes_nothing(self, dm, player, campaign):
        scene = make_scene(dm, campaign['id'])
        url = f'/api/scenes/{scene["id"]}/fog'
        dm.post(url, json={'cells': [{'row': 1, 'col': 1}]})
        before = dm.get(f'/api/scenes/{scene["id"]}').get_json()['data']['fogRevealed']

        assert player.post(url, json={'cells': [{'row': 0, 'col': 0}, {'row': 2, 'col': 3}]}) \
            .status_code == 403
        assert player.delete(url).status_code == 403

        after = dm.get(f'/api/scenes/{scene["id"]}').get_json()['data']['fogRevealed']
        assert after == before
        assert sum(cell for row in after for cell in row) == 1

    def test_size_limits(self, dm, campaign):
        resp = dm.post(f'/api/campaigns/{campaign["id"]}/scenes', json={'name': 'Huge', 'width': 500})
        assert resp.status_code == 400

    def test_reveal_and_reset_fog(self, dm, player, campaign):
        scene = make_scene(dm, campaign['id'])
        url = f'/api/scenes/{scene["id"]}/fog'

        resp = dm.post(url, json={'cells': [{'row': 0, 'col': 0}, {'row': 4, 'col': 5},
                                            {'row': 40, 'col': 0}]})
        fog = resp.get_json()['data']['fogRevealed']
        assert fog[0][0] is True and fog[4][5] is True
        assert sum(cell for row in fog for cell in row) == 2

        seen = player.get(f'/api/scenes/{scene["id"]}').get_json()['data']['fogRevealed']
        assert seen == fog

        cleared = dm.delete(url).get_json()['data']['fogRevealed']
        assert not any(cell for row in cleared for cell in row)

    def test_reset_uses_current_size(self, dm, campaign):
        scene = make_scene(dm, campaign['id'])
        dm.patch(f'/api/scenes/{scene["id"]}', json={'width': 8, 'height': 7})
        fog = dm.delete(f'/api/scenes/{scene["id"]}/fog').get_json()['data']['fogRevealed']
        assert len(fog) == 7 and len(fog[0]) == 8

    def test_hidden_tokens_and_drawings(self, dm, player, campaign):
        scene = make_scene(dm, campaign['id'])
        sid = scene['id']
        dm.post(f'/api/scenes/{sid}/tokens', json={'name': 'Aria', 'isPC': True})
        dm.post(f'/api/scenes/{sid}/tokens', json={'name': 'Ambusher', 'hidden': True})
        dm.post(f'/api/scenes/{sid}/drawings', json={'kind': 'text', 'text': 'Trap!', 'visible': False})
        dm.post(f'/api/scenes/{sid}/drawings', json={'kind': 'line', 'points': [[0, 0], [3, 3]]})

        as_dm = dm.get(f'/api/scenes/{sid}').get_json()['data']
        assert [t['name'] for t in as_dm['tokens']] == ['Aria', 'Ambusher']
        assert len(as_dm['drawings']) == 2

        as_player = player.get(f'/api/scenes/{sid}').get_json()['data']
        assert [t['name'] for t in as_player['tokens']] == ['Aria']
        assert [d['kind'] for d in as_player['drawings']] == ['line']

        listed = player.get(f'/api/campaigns/{campaign["id"]}/scenes').get_json()['data']
        assert [t['name'] for t in listed[0]['tokens']] == ['Aria']

    def test_move_and_delete_token(self, dm, player, campaign):
        scene = make_scene(dm, campaign['id'])
        token = dm.post(f'/api/scenes/{scene["id"]}/tokens', json={'name': 'Goblin'}).get_json()['data']
        url = f'/api/tokens/{token["id"]}'

        assert player.patch(url, json={'x': 3}).status_code == 403
        moved = dm.patch(url, json={'x': 3, 'y': 2, 'conditions': ['Prone']}).get_json()['data']
        assert (moved['x'], moved['y'], moved['conditions']) == (3, 2, ['Prone'])

        assert dm.delete(url).status_code == 200
        assert dm.get(f'/api/scenes/{scene["id"]}').get_json()['data']['tokens'] == []

    def test_delete_scene(self, dm, campaign):
        scene = make_scene(dm, campaign['id'])
        dm.post(f'/api/scenes/{scene["id"]}/tokens', json={'name': 'Goblin'})
        assert dm.delete(f'/api/scenes/{scene["id"]}').status_code == 200
        assert dm.get(f'/api/scenes/{scene["id"]}').status_code == 404


class TestFreeDice:
    def test_roll(self, player):
        resp = player.post('/api/dice/roll', json={'formula': '2d6+1', 'label': 'Damage'})
        assert resp.status_code == 200
        data = resp.get_json()['data']
        assert data['formula'] == '2d6+1'
        assert data['label'] == 'Damage'
        assert data['total'] == sum(data['rolls']) + 1

    def test_needs_login(self, app):
        assert app.test_client().post('/api/dice/roll', json={'formula': '1d20'}).status_code == 401

    def test_invalid(self, player):
        assert player.post('/api/dice/roll', json={'formula': 'fireball'}).status_code == 400
        assert player.post('/api/dice/roll', json={'formula': '500d6'}).status_code == 400


class TestRollableTables:
    ENTRIES = [
        {'min': 1, 'max': 3, 'result': 'Goblins'},
        {'min': 4, 'max': 6, 'result': 'A merchant'},
    ]

    def make_table(self, client, campaign_id, entries=None):
        resp = client.post(f'/api/campaigns/{campaign_id}/tables', json={
            'name': 'Road Encounters',
            'entries': self.ENTRIES if entries is None else entries,
        })
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()['data']

    def test_create_and_roll(self, player, campaign, monkeypatch):
        table = self.make_table(player, campaign['id'])
        assert table['createdBy'] == player.user_id

        monkeypatch.setattr(dice, 'roll_die', lambda sides: 5)
        data = player.post(f'/api/tables/{table["id"]}/roll').get_json()['data']
        assert data['formula'] == '1d6'
        assert data['roll'] == 5
        assert data['result'] == 'A merchant'
        assert data['tableName'] == 'Road Encounters'

    def test_empty_table(self, player, campaign):
        table = self.make_table(player, campaign['id'], entries=[])
        data = player.post(f'/api/tables/{table["id"]}/roll').get_json()['data']
        assert data == {'result': 'Table is empty', 'roll': 0}

    def test_inverted_range_is_invalid(self, player, campaign):
        resp = player.post(f'/api/campaigns/{campaign["id"]}/tables', json={
            'name': 'Broken', 'entries': [{'min': 5, 'max': 2, 'result': 'never'}],
        })
        assert resp.status_code == 400

    def test_delete_by_creator_or_dm_only(self, dm, player, other_player, campaign):
        first = self.make_table(player, campaign['id'])
        second = self.make_table(player, campaign['id'])
        assert other_player.delete(f'/api/tables/{first["id"]}').status_code == 403
        assert player.delete(f'/api/tables/{first["id"]}').status_code == 200
        assert dm.delete(f'/api/tables/{second["id"]}').status_code == 200

    def test_outsider_cannot_read(self, player, outsider, campaign):
        table = self.make_table(player, campaign['id'])
        assert outsider.get(f'/api/tables/{table["id"]}').status_code == 403
        assert outsider.get(f'/api/campaigns/{campaign["id"]}/tables').status_code == 403


class TestStarterTables:
    def test_seed_is_idempotent(self, app, dm, campaign):
        with app.app_context():
            added, skipped = seed_tables(campaign['id'])
            assert len(added) == len(STARTER_TABLES)
            assert skipped == []

            added, skipped = seed_tables(campaign['id'])
            assert added == []
            assert len(skipped) == len(STARTER_TABLES)

            tables = RollableTable.query.filter_by(campaign_id=campaign['id']).all()
            assert len(tables) == len(STARTER_TABLES)
            assert {t.created_by for t in tables} == {dm.user_id}

    def test_starter_tables_roll_cleanly(self):
        for table in STARTER_TABLES:
            for _ in range(20):
                assert dice.roll_on_table(table['entries'])['result'] != 'No match found'

    def test_cli(self, app, campaign):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['seed-tables', str(campaign['id'])])
        assert result.exit_code == 0
        assert 'ADDED Weather' in result.output

        missing = runner.invoke(args=['seed-tables', '9999'])
        assert missing.exit_code != 0

        with app.app_context():
            assert db.session.query(RollableTable).count() == len(STARTER_TABLES)
