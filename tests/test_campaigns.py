"""
Tests for campaigns, membership and character sheets.
"""

import pytest

from taverna import db
from taverna.models import Campaign, CampaignMember, Character


def sheet(**overrides):
    body = {
        'name': 'Aria Swiftwind',
        'race': 'Half-Elf',
        'class': 'Ranger',
        'level': 3,
        'abilityScores': {'strength': 12, 'dexterity': 16, 'constitution': 14,
                          'intelligence': 10, 'wisdom': 14, 'charisma': 10},
        'hp': {'current': 24, 'max': 24},
        'spellSlots': [{'level': 1, 'total': 3, 'used': 1}],
        'inventory': [{'name': 'Longbow', 'equipped': True}],
    }
    body.update(overrides)
    return body


class TestCampaigns:
    def test_create_makes_creator_the_dm(self, app, dm):
        resp = dm.post('/api/campaigns', json={'name': 'Frostmaw', 'maxPlayers': 4})
        assert resp.status_code == 201
        data = resp.get_json()['data']
        assert data['isDM'] is True
        assert data['myRole'] == 'DM'
        assert data['maxPlayers'] == 4
        assert data['inviteCode']
        assert [m['role'] for m in data['members']] == ['DM']

    def test_list_includes_joined_campaigns(self, player, campaign):
        data = player.get('/api/campaigns').get_json()['data']
        assert [c['id'] for c in data] == [campaign['id']]
        assert data[0]['isDM'] is False

    def test_outsider_is_forbidden(self, outsider, campaign):
        assert outsider.get(f'/api/campaigns/{campaign["id"]}').status_code == 403

    def test_missing_campaign_is_404(self, dm):
        assert dm.get('/api/campaigns/9999').status_code == 404

    def test_join_twice_is_a_conflict(self, player, campaign):
        resp = player.post('/api/campaigns/join', json={'inviteCode': campaign['inviteCode']})
        assert resp.status_code == 409

    def test_dm_cannot_join_own_campaign(self, dm, campaign):
        resp = dm.post('/api/campaigns/join', json={'inviteCode': campaign['inviteCode']})
        assert resp.status_code == 409

    def test_bad_invite_code(self, outsider, campaign):
        resp = outsider.post('/api/campaigns/join', json={'inviteCode': 'nope'})
        assert resp.status_code == 404

    def test_full_campaign(self, register, dm):
        code = dm.post('/api/campaigns', json={'name': 'Tiny Table', 'maxPlayers': 2}) \
            .get_json()['data']['inviteCode']
        first = register('First')
        assert first.post('/api/campaigns/join', json={'inviteCode': code}).status_code == 200

        second = register('Second')
        resp = second.post('/api/campaigns/join', json={'inviteCode': code})
        assert resp.status_code == 409
        assert resp.get_json()['error'] == 'Campaign is full'

    def test_only_dm_can_edit(self, dm, player, campaign):
        url = f'/api/campaigns/{campaign["id"]}'
        assert player.patch(url, json={'name': 'Mine now'}).status_code == 403

        resp = dm.patch(url, json={'status': 'PAUSED', 'setting': 'The Frozen North'})
        assert resp.status_code == 200
        data = resp.get_json()['data']
        assert data['status'] == 'PAUSED'
        assert data['setting'] == 'The Frozen North'

    def test_invalid_status(self, dm, campaign):
        resp = dm.patch(f'/api/campaigns/{campaign["id"]}', json={'status': 'ON_FIRE'})
        assert resp.status_code == 400

    def test_regenerate_invite_code(self, dm, outsider, campaign):
        resp = dm.post(f'/api/campaigns/{campaign["id"]}/invite-code')
        new_code = resp.get_json()['data']['inviteCode']
        assert new_code != campaign['inviteCode']
        old = outsider.post('/api/campaigns/join', json={'inviteCode': campaign['inviteCode']})
        assert old.status_code == 404
        assert outsider.post('/api/campaigns/join', json={'inviteCode': new_code}).status_code == 200

    def test_leave_takes_characters_along(self, app, player, campaign):
        cid = campaign['id']
        assert player.post(f'/api/campaigns/{cid}/characters', json=sheet()).status_code == 201
        assert player.post(f'/api/campaigns/{cid}/leave').status_code == 200
        assert player.get(f'/api/campaigns/{cid}').status_code == 403
        with app.app_context():
            assert Character.query.filter_by(campaign_id=cid).count() == 0

    def test_dm_cannot_leave(self, dm, campaign):
        assert dm.post(f'/api/campaigns/{campaign["id"]}/leave').status_code == 403

    def test_delete_cascades(self, app, dm, player, campaign):
        cid = campaign['id']
        player.post(f'/api/campaigns/{cid}/characters', json=sheet())
        dm.post(f'/api/campaigns/{cid}/messages', json={'content': 'Welcome!'})
        dm.post(f'/api/campaigns/{cid}/sessions', json={'sessionNumber': 1})

        assert player.delete(f'/api/campaigns/{cid}').status_code == 403
        assert dm.delete(f'/api/campaigns/{cid}').status_code == 200
        with app.app_context():
            assert db.session.get(Campaign, cid) is None
            assert CampaignMember.query.filter_by(campaign_id=cid).count() == 0
            assert Character.query.filter_by(campaign_id=cid).count() == 0


class TestCharacters:
    def test_create_and_read(self, player, campaign):
        resp = player.post(f'/api/campaigns/{campaign["id"]}/characters', json=sheet())
        assert resp.status_code == 201
        data = resp.get_json()['data']
        assert data['class'] == 'Ranger'
        assert data['playerId'] == player.user_id
        assert data['abilityScores']['dexterity'] == 16
        assert data['spellSlots'] == [{'level': 1, 'total': 3, 'used': 1}]
        assert data['inventory'][0]['quantity'] == 1

    @pytest.mark.parametrize('overrides', [
        {'abilityScores': {'strength': 12}},
        {'hp': {'current': -1, 'max': 10}},
        {'spellSlots': [{'level': 1, 'total': 2, 'used': 3}]},
        {'level': 21},
        {'class': ''},
    ])
    def test_invalid_sheet(self, player, campaign, overrides):
        resp = player.post(f'/api/campaigns/{campaign["id"]}/characters', json=sheet(**overrides))
        assert resp.status_code == 400
        assert resp.get_json()['errors']

    def test_owner_and_dm_can_read_others_cannot(self, dm, player, other_player, outsider, campaign):
        char_id = player.post(f'/api/campaigns/{campaign["id"]}/characters', json=sheet()) \
            .get_json()['data']['id']
        assert player.get(f'/api/characters/{char_id}').status_code == 200
        assert dm.get(f'/api/characters/{char_id}').status_code == 200
        assert other_player.get(f'/api/characters/{char_id}').status_code == 403
        assert outsider.get(f'/api/characters/{char_id}').status_code == 403

    def test_partial_update(self, player, campaign):
        char_id = player.post(f'/api/campaigns/{campaign["id"]}/characters', json=sheet()) \
            .get_json()['data']['id']
        resp = player.patch(f'/api/characters/{char_id}', json={
            'hp': {'current': 10, 'max': 24},
            'class': 'Fighter',
            'currency': {'gp': 15},
        })
        assert resp.status_code == 200
        data = resp.get_json()['data']
        assert data['hp'] == {'current': 10, 'max': 24, 'temp': 0}
        assert data['class'] == 'Fighter'
        assert data['currency']['gp'] == 15
        assert data['race'] == 'Half-Elf'

    def test_delete(self, player, campaign):
        char_id = player.post(f'/api/campaigns/{campaign["id"]}/characters', json=sheet()) \
            .get_json()['data']['id']
        assert player.delete(f'/api/characters/{char_id}').status_code == 200
        assert player.get(f'/api/characters/{char_id}').status_code == 404

    def test_list_is_visible_to_members(self, player, other_player, campaign):
        player.post(f'/api/campaigns/{campaign["id"]}/characters', json=sheet())
        data = other_player.get(f'/api/campaigns/{campaign["id"]}/characters').get_json()['data']
        assert [c['name'] for c in data] == ['Aria Swiftwind']
