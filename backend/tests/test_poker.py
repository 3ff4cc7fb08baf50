import pytest

from partyhub.errors import PreconditionError
from partyhub.services.games.cards import parse_cards
from partyhub.services.games.poker import DEALING_HOLE_CARDS, FLOP, RIVER, TURN


@pytest.fixture()
def poker_round(service, lobby_of):
    def _start(*names):
        lobby, sids = lobby_of(*names)
        assert service.start_round(sids[0], 'dead-draw-poker') == {'success': True}
        return lobby, sids

    return _start


def rig(lobby, hands, board):
    """Replace the shuffled deal with known cards before anything is revealed."""
    state = lobby.round_state
    for pid, cards in zip(list(lobby.players), hands):
        state.hands[pid] = parse_cards(cards)
    state.community = parse_cards(board)


def test_deal_gives_two_cards_each_and_five_on_board(poker_round):
    lobby, _ = poker_round('Alice', 'Bobby', 'Carol')
    state = lobby.round_state
    assert list(state.hands) == list(lobby.players)
    assert all(len(cards) == 2 for cards in state.hands.values())
    assert len(state.community) == 5
    dealt = [c for cards in state.hands.values() for c in cards] + state.community
    assert len(set(dealt)) == len(dealt)


def test_hole_cards_are_sent_only_to_their_owner(poker_round, emitter, scheduler):
    lobby, sids = poker_round('Alice', 'Bobby')
    scheduler.run_all()
    hole = emitter.named('hole-cards')
    assert [s.kind for s in hole] == ['direct', 'direct']
    assert [s.target for s in hole] == sids
    for sent, pid in zip(hole, lobby.players):
        assert sent.payload['cards'] == [c.to_dict() for c in lobby.round_state.hands[pid]]


def test_deal_runs_through_every_street(poker_round, emitter, scheduler):
    lobby, _ = poker_round('Alice', 'Bobby')
    phases = [p['phase'] for p in emitter.payloads('phase')]
    assert phases == [DEALING_HOLE_CARDS]

    scheduler.run_all()
    phases = [p['phase'] for p in emitter.payloads('phase')]
    assert phases == [DEALING_HOLE_CARDS, FLOP, TURN, RIVER, 'results']
    positions = [p['position'] for p in emitter.payloads('community-card')]
    assert positions == [0, 1, 2, 3, 4]
    assert emitter.payloads('community-card')[-1]['communityCards'] == [
        c.to_dict() for c in lobby.round_state.community
    ]
    assert len(emitter.named('hole-cards-complete')) == 1
    assert len(emitter.named('results')) == 1


def test_deal_is_paced(poker_round, emitter, scheduler):
    poker_round('Alice', 'Bobby')
    assert len(emitter.named('hole-cards')) == 1
    scheduler.advance(0.5)
    assert len(emitter.named('hole-cards')) == 2
    assert not emitter.named('community-card')
    scheduler.advance(0.5 + 2)
    assert len(emitter.named('community-card')) == 1


def test_worst_hand_loses(poker_round, emitter, scheduler):
    lobby, _ = poker_round('Alice', 'Bobby', 'Carol')
    rig(lobby, ['AS AH', '2C 7D', 'KS KH'], '3D 8S 9C JD 4H')
    scheduler.run_all()

    results = emitter.payloads('results')[-1]
    assert [p['displayName'] for p in results['players']] == ['Bobby', 'Carol', 'Alice']
    assert [l['displayName'] for l in results['losers']] == ['Bobby']
    assert results['losers'][0]['handName'] == 'High Card'
    assert results['players'][-1]['handName'] == 'Pair'
    assert len(results['communityCards']) == 5


def test_tied_worst_hands_all_lose(poker_round, emitter, scheduler):
    lobby, _ = poker_round('Alice', 'Bobby', 'Carol')
    # the board plays for Bobby and Carol
    rig(lobby, ['AS AH', '2C 3C', '2D 3D'], 'KS QH 9C 7D 5H')
    scheduler.run_all()
    losers = emitter.payloads('results')[-1]['losers']
    assert sorted(l['displayName'] for l in losers) == ['Bobby', 'Carol']


def test_actions_are_rejected(poker_round, service):
    _, sids = poker_round('Alice', 'Bobby')
    ack = service.game_action(sids[1], 'fold', {})
    assert ack == {'error': 'No actions available in Dead Draw Poker'}


def test_engine_handle_action_raises(poker_round, games):
    lobby, _ = poker_round('Alice', 'Bobby')
    with pytest.raises(PreconditionError):
        games.get('dead-draw-poker').handle_action(lobby, list(lobby.players)[0], 'check', {})


def test_ending_mid_deal_stops_the_reveal(poker_round, service, emitter, scheduler):
    lobby, sids = poker_round('Alice', 'Bobby')
    scheduler.advance(3)
    revealed = len(emitter.named('community-card'))
    assert service.end_round(sids[0]) == {'success': True}
    assert lobby.round_state is None
    assert scheduler.pending('deal') == []

    scheduler.run_all()
    assert len(emitter.named('community-card')) == revealed
    assert not emitter.named('results')


def test_disconnected_player_gets_hole_cards_on_reconnect(poker_round, service, emitter, scheduler):
    lobby, sids = poker_round('Alice', 'Bobby')
    bob_id = list(lobby.players)[1]
    service.disconnect(sids[1])
    scheduler.advance(1)
    # dealt while away, so nothing was pushed to the dead connection
    assert [s.target for s in emitter.named('hole-cards')] == [sids[0]]

    ack = service.reconnect('sid-new', bob_id, lobby.code)
    state = ack['gameState']
    assert state['gameId'] == 'dead-draw-poker'
    assert state['holeCards'] == [c.to_dict() for c in lobby.round_state.hands[bob_id]]


def test_reconnect_snapshot_shows_revealed_board_only(poker_round, games, scheduler):
    lobby, _ = poker_round('Alice', 'Bobby')
    scheduler.advance(4)
    view = games.get('dead-draw-poker').get_reconnect_state(lobby, list(lobby.players)[0])
    assert view['phase'] == FLOP
    assert len(view['communityCards']) == 2
    assert 'results' not in view

    scheduler.run_all()
    view = games.get('dead-draw-poker').get_reconnect_state(lobby, list(lobby.players)[0])
    assert view['phase'] == 'results'
    assert view['results']['losers']
    assert len(view['communityCards']) == 5
