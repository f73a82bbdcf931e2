"""
Tests for game sessions: lifecycle, initiative, HP/condition logging,
the combat log, secret rolls and the recap.
"""

from taverna import dice
from taverna.models import ChatMessage, CombatLogEntry


def add_entry(client, session_id, name, initiative, **extra):
    body = {'name': name, 'initiative': initiative}
    body.update(extra)
    resp = client.post(f'/api/sessions/{session_id}/initiative', json=body)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()['data']


class TestSessionLifecycle:
    def test_create_updates_campaign(self, dm, campaign):
        cid = campaign['id']
        resp = dm.post(f'/api/campaigns/{cid}/sessions', json={'sessionNumber': 3})
        assert resp.status_code == 201
        data = resp.get_json()['data']
        assert data['status'] == 'LOBBY'
        assert data['currentRound'] == 0
        assert data['connectedPlayers'] == [dm.user_id]

        detail = dm.get(f'/api/campaigns/{cid}').get_json()['data']
        assert detail['sessionCount'] == 3
        assert detail['lastPlayedAt'] is not None

    def test_session_count_never_goes_down(self, dm, campaign):
        cid = campaign['id']
        dm.post(f'/api/campaigns/{cid}/sessions', json={'sessionNumber': 5})
        dm.post(f'/api/campaigns/{cid}/sessions', json={'sessionNumber': 2})
        assert dm.get(f'/api/campaigns/{cid}').get_json()['data']['sessionCount'] == 5

    def test_only_dm_creates_sessions(self, player, campaign):
        resp = player.post(f'/api/campaigns/{campaign["id"]}/sessions', json={'sessionNumber': 1})
        assert resp.status_code == 403

    def test_status_transitions(self, dm, live_session):
        url = f'/api/sessions/{live_session["id"]}'
        data = dm.get(url).get_json()['data']
        assert data['status'] == 'LIVE'
        assert data['startedAt'] is not None

        assert dm.patch(url, json={'status': 'PAUSED'}).status_code == 200
        ended = dm.patch(url, json={'status': 'ENDED'}).get_json()['data']
        assert ended['endedAt'] is not None

        reopen = dm.patch(url, json={'status': 'LIVE'})
        assert reopen.status_code == 409

    def test_unknown_status(self, dm, live_session):
        resp = dm.patch(f'/api/sessions/{live_session["id"]}', json={'status': 'SLEEPING'})
        assert resp.status_code == 400

    def test_list_sessions(self, player, live_session, campaign):
        data = player.get(f'/api/campaigns/{campaign["id"]}/sessions').get_json()['data']
        assert [s['id'] for s in data] == [live_session['id']]
        assert data[0]['_count'] == {'initiativeEntries': 0, 'combatLog': 0}

    def test_outsider_cannot_read(self, outsider, live_session):
        assert outsider.get(f'/api/sessions/{live_session["id"]}').status_code == 403


class TestInitiative:
    def test_order_and_turns(self, dm, live_session):
        sid = live_session['id']
        add_entry(dm, sid, 'Goblin', 12, isNPC=True)
        add_entry(dm, sid, 'Aria', 18)
        add_entry(dm, sid, 'Bram', 12)

        order = dm.get(f'/api/sessions/{sid}/initiative').get_json()['data']
        # Highest first; ties keep the order they were added in
        assert [e['name'] for e in order] == ['Aria', 'Goblin', 'Bram']

        def advance():
            data = dm.post(f'/api/sessions/{sid}/next-turn').get_json()['data']
            active = [e['name'] for e in data['initiativeEntries'] if e['isActive']]
            return active, data['currentRound']

        assert advance() == (['Aria'], 1)
        assert advance() == (['Goblin'], 1)
        assert advance() == (['Bram'], 1)
        assert advance() == (['Aria'], 2)

    def test_turns_keep_cycling_over_several_rounds(self, dm, live_session):
        sid = live_session['id']
        add_entry(dm, sid, 'Aria', 18)
        add_entry(dm, sid, 'Goblin', 9)

        seen = []
        for _ in range(7):
            data = dm.post(f'/api/sessions/{sid}/next-turn').get_json()['data']
            active = [e['name'] for e in data['initiativeEntries'] if e['isActive']]
            seen.append((active, data['currentRound']))

        assert seen == [
            (['Aria'], 1), (['Goblin'], 1),
            (['Aria'], 2), (['Goblin'], 2),
            (['Aria'], 3), (['Goblin'], 3),
            (['Aria'], 4),
        ]

    def test_players_cannot_run_turns(self, player, dm, live_session):
        sid = live_session['id']
        add_entry(dm, sid, 'Aria', 18)
        add_entry(dm, sid, 'Goblin', 9)
        dm.post(f'/api/sessions/{sid}/next-turn')
        before = dm.get(f'/api/sessions/{sid}').get_json()['data']

        assert player.post(f'/api/sessions/{sid}/next-turn').status_code == 403

        after = dm.get(f'/api/sessions/{sid}').get_json()['data']
        assert after['currentRound'] == before['currentRound'] == 1
        assert after['initiativeEntries'] == before['initiativeEntries']

    def test_new_entry_round_trip(self, dm, live_session):
        sid = live_session['id']
        plain = add_entry(dm, sid, 'Goblin', 12, isNPC=True, hp={'current': 7, 'max': 7},
                          armorClass=13)
        assert plain['conditions'] == []
        assert plain['isActive'] is False
        assert (plain['name'], plain['initiative'], plain['isNPC']) == ('Goblin', 12, True)
        assert plain['hp'] == {'current': 7, 'max': 7}
        assert plain['armorClass'] == 13

        active = add_entry(dm, sid, 'Aria', 18, isActive=True)
        assert active['isActive'] is True
        assert active['conditions'] == []

    def test_character_must_belong_to_campaign(self, dm, live_session):
        resp = dm.post(f'/api/sessions/{live_session["id"]}/initiative',
                       json={'name': 'Stranger', 'initiative': 5, 'characterId': 999})
        assert resp.status_code == 400

    def test_damage_logs_and_death_announces(self, app, dm, player, live_session, campaign):
        sid = live_session['id']
        goblin = add_entry(dm, sid, 'Goblin', 12, hp={'current': 7, 'max': 7})
        dm.post(f'/api/sessions/{sid}/next-turn')

        url = f'/api/sessions/{sid}/initiative/{goblin["id"]}'
        resp = player.patch(url, json={'hp': {'current': 3, 'max': 7}})
        assert resp.status_code == 200
        assert resp.get_json()['data']['hp'] == {'current': 3, 'max': 7}

        player.patch(url, json={'hp': {'current': 0, 'max': 7}})
        dm.patch(url, json={'hp': {'current': 2, 'max': 7}})

        with app.app_context():
            rows = CombatLogEntry.query.filter_by(session_id=sid) \
                .order_by(CombatLogEntry.id).all()
            assert [r.action for r in rows] == ['DAMAGE', 'DAMAGE', 'DEATH', 'HEALING']
            assert rows[0].result == 'Goblin takes 4 damage (3/7 HP)'
            assert rows[0].details == {'oldHP': 7, 'newHP': 3, 'maxHP': 7, 'delta': -4,
                                       'updatedBy': player.user_id}
            assert rows[3].details['delta'] == 2
            assert all(r.round == 1 for r in rows)

            announced = ChatMessage.query.filter_by(campaign_id=campaign['id'], type='COMBAT').all()
            assert [m.content for m in announced] == ['💀 Goblin falls unconscious!']
            assert announced[0].channel == 'COMBAT'

    def test_unchanged_hp_logs_nothing(self, app, dm, live_session):
        sid = live_session['id']
        goblin = add_entry(dm, sid, 'Goblin', 12, hp={'current': 7, 'max': 7})
        dm.patch(f'/api/sessions/{sid}/initiative/{goblin["id"]}', json={'hp': {'current': 7, 'max': 7}})
        with app.app_context():
            assert CombatLogEntry.query.filter_by(session_id=sid).count() == 0

    def test_heal_and_conditions_in_one_update(self, app, dm, live_session):
        sid = live_session['id']
        aria = add_entry(dm, sid, 'Aria', 18, hp={'current': 4, 'max': 20})
        resp = dm.patch(f'/api/sessions/{sid}/initiative/{aria["id"]}',
                        json={'hp': {'current': 9, 'max': 20}, 'conditions': ['Blessed', 'Hasted']})
        assert resp.status_code == 200

        with app.app_context():
            rows = CombatLogEntry.query.filter_by(session_id=sid).order_by(CombatLogEntry.id).all()
            assert [r.action for r in rows] == ['HEALING', 'CONDITION_ADD', 'CONDITION_ADD']
            assert rows[0].details['delta'] == 5

    def test_zero_to_zero_hp_logs_nothing(self, app, dm, live_session, campaign):
        sid = live_session['id']
        goblin = add_entry(dm, sid, 'Goblin', 12, hp={'current': 0, 'max': 7})
        resp = dm.patch(f'/api/sessions/{sid}/initiative/{goblin["id"]}',
                        json={'hp': {'current': 0, 'max': 7}})
        assert resp.status_code == 200

        with app.app_context():
            assert CombatLogEntry.query.filter_by(session_id=sid).count() == 0
            assert ChatMessage.query.filter_by(campaign_id=campaign['id'], type='COMBAT').count() == 0

    def test_conditions_diff(self, app, dm, live_session):
        sid = live_session['id']
        goblin = add_entry(dm, sid, 'Goblin', 12)
        url = f'/api/sessions/{sid}/initiative/{goblin["id"]}'
        dm.patch(url, json={'conditions': ['Poisoned', 'Prone']})
        data = dm.patch(url, json={'conditions': ['Prone', 'Stunned']}).get_json()['data']
        assert data['conditions'] == ['Prone', 'Stunned']

        with app.app_context():
            results = [r.result for r in CombatLogEntry.query.filter_by(session_id=sid)
                       .order_by(CombatLogEntry.id)]
        assert results == [
            'Goblin gains condition: Poisoned',
            'Goblin gains condition: Prone',
            'Goblin gains condition: Stunned',
            'Goblin loses condition: Poisoned',
        ]

    def test_remove_entry_is_logged(self, app, dm, player, live_session):
        sid = live_session['id']
        goblin = add_entry(dm, sid, 'Goblin', 12)
        url = f'/api/sessions/{sid}/initiative/{goblin["id"]}'
        assert player.delete(url).status_code == 403
        assert dm.delete(url).status_code == 200
        assert dm.get(f'/api/sessions/{sid}/initiative').get_json()['data'] == []
        with app.app_context():
            row = CombatLogEntry.query.filter_by(session_id=sid).one()
            assert row.action == 'REMOVED'

    def test_entry_from_another_session(self, dm, campaign, live_session):
        other = dm.post(f'/api/campaigns/{campaign["id"]}/sessions', json={'sessionNumber': 2}) \
            .get_json()['data']
        goblin = add_entry(dm, other['id'], 'Goblin', 12)
        resp = dm.patch(f'/api/sessions/{live_session["id"]}/initiative/{goblin["id"]}',
                        json={'armorClass': 15})
        assert resp.status_code == 404


class TestCombatLog:
    def test_manual_entry_is_announced(self, app, player, live_session, campaign):
        sid = live_session['id']
        resp = player.post(f'/api/sessions/{sid}/combat-log', json={
            'action': 'DAMAGE', 'turn': 'Aria', 'result': 'Aria hits the goblin for 6',
            'details': {'amount': 6},
        })
        assert resp.status_code == 201
        assert resp.get_json()['data']['actorId'] == player.user_id

        with app.app_context():
            message = ChatMessage.query.filter_by(campaign_id=campaign['id']).one()
            assert message.content == '⚔️ Aria hits the goblin for 6'
            assert message.combat_result['amount'] == 6

    def test_narration_is_not_announced(self, app, dm, live_session, campaign):
        dm.post(f'/api/sessions/{live_session["id"]}/combat-log',
                json={'action': 'NARRATION', 'turn': 'DM', 'result': 'The torches gutter.'})
        with app.app_context():
            assert ChatMessage.query.filter_by(campaign_id=campaign['id']).count() == 0

    def test_server_only_actions_are_rejected(self, dm, live_session):
        resp = dm.post(f'/api/sessions/{live_session["id"]}/combat-log',
                       json={'action': 'SECRET_ROLL', 'turn': 'DM', 'result': 'nat 20, honest'})
        assert resp.status_code == 400

    def test_read_newest_first_with_round_filter(self, dm, live_session):
        sid = live_session['id']
        for text in ('first', 'second'):
            dm.post(f'/api/sessions/{sid}/combat-log',
                    json={'action': 'ACTION', 'turn': 'DM', 'result': text})
        dm.post(f'/api/sessions/{sid}/initiative', json={'name': 'Goblin', 'initiative': 3})
        dm.post(f'/api/sessions/{sid}/next-turn')
        dm.post(f'/api/sessions/{sid}/combat-log',
                json={'action': 'ACTION', 'turn': 'DM', 'result': 'third'})

        data = dm.get(f'/api/sessions/{sid}/combat-log').get_json()['data']
        assert [row['result'] for row in data['logs']] == ['third', 'second', 'first']
        assert data['currentRound'] == 1

        round_zero = dm.get(f'/api/sessions/{sid}/combat-log?round=0').get_json()['data']
        assert [row['result'] for row in round_zero['logs']] == ['second', 'first']

        limited = dm.get(f'/api/sessions/{sid}/combat-log?limit=1').get_json()['data']
        assert len(limited['logs']) == 1

    def test_bad_limit(self, dm, live_session):
        resp = dm.get(f'/api/sessions/{live_session["id"]}/combat-log?limit=lots')
        assert resp.status_code == 400

    def test_recap_groups_rounds(self, dm, live_session):
        sid = live_session['id']
        dm.post(f'/api/sessions/{sid}/combat-log', json={'action': 'ACTION', 'turn': 'DM', 'result': 'a'})
        dm.post(f'/api/sessions/{sid}/initiative', json={'name': 'Goblin', 'initiative': 3})
        dm.post(f'/api/sessions/{sid}/next-turn')
        dm.post(f'/api/sessions/{sid}/combat-log', json={'action': 'SPELL', 'turn': 'DM', 'result': 'b'})

        recap = dm.get(f'/api/sessions/{sid}/recap').get_json()['data']
        assert [r['round'] for r in recap['rounds']] == [0, 1]
        assert recap['actionCounts'] == {'ACTION': 1, 'SPELL': 1}
        assert recap['totalEntries'] == 2


class TestSessionRolls:
    def test_public_roll_posts_to_chat(self, app, player, live_session, campaign, monkeypatch):
        monkeypatch.setattr(dice, 'roll_die', lambda sides: 20)
        resp = player.post(f'/api/sessions/{live_session["id"]}/roll',
                           json={'formula': '1d20+3', 'label': 'Attack', 'characterName': 'Aria'})
        assert resp.status_code == 200
        data = resp.get_json()['data']
        assert data['total'] == 23
        assert data['isCritical'] is True
        assert data['logged'] is True
        assert data['sessionId'] == live_session['id']

        with app.app_context():
            row = CombatLogEntry.query.filter_by(session_id=live_session['id']).one()
            assert row.action == 'DICE_ROLL'
            assert row.turn == 'Aria'
            message = ChatMessage.query.filter_by(campaign_id=campaign['id']).one()
            assert message.type == 'DICE'
            assert message.dice_result['total'] == 23

    def test_secret_roll_is_hidden_from_other_players(self, app, dm, player, other_player,
                                                      live_session, campaign):
        sid = live_session['id']
        resp = player.post(f'/api/sessions/{sid}/roll', json={'formula': '1d20', 'isPrivate': True})
        assert resp.status_code == 200

        def log_actions(client):
            logs = client.get(f'/api/sessions/{sid}/combat-log').get_json()['data']['logs']
            return [row['action'] for row in logs]

        assert log_actions(dm) == ['SECRET_ROLL']
        assert log_actions(player) == ['SECRET_ROLL']
        assert log_actions(other_player) == []

        assert other_player.get(f'/api/sessions/{sid}/recap').get_json()['data']['totalEntries'] == 0
        assert other_player.get(f'/api/sessions/{sid}').get_json()['data']['combatLog'] == []

        with app.app_context():
            assert ChatMessage.query.filter_by(campaign_id=campaign['id']).count() == 0

    def test_bad_formula(self, player, live_session):
        resp = player.post(f'/api/sessions/{live_session["id"]}/roll', json={'formula': '1d20kh1'})
        assert resp.status_code == 400

    def test_outsider_cannot_roll(self, outsider, live_session):
        resp = outsider.post(f'/api/sessions/{live_session["id"]}/roll', json={'formula': '1d20'})
        assert resp.status_code == 403
