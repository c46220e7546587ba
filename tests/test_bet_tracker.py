"""Tests for the bet ledger."""

import json

import pytest

from courtside.tracking.bet_tracker import (
    BetCreate,
    BetStatus,
    BetTracker,
    BetType,
    BetUpdate,
    FinalScore,
    american_profit,
)


@pytest.fixture
def tracker(tmp_path, clock):
    return BetTracker(data_dir=str(tmp_path), clock=clock)


def bet_data(bet_type=BetType.OVER, line=220.5, odds=-110, amount=100.0, game_id="g1"):
    return BetCreate(
        game_id=game_id,
        game_title="Miami Heat @ Boston Celtics",
        home_team="Boston Celtics",
        away_team="Miami Heat",
        bet_type=bet_type,
        line=line,
        odds=odds,
        amount=amount,
    )


class TestAmericanProfit:
    def test_favorite(self):
        assert american_profit(110, -110) == pytest.approx(100.0)

    def test_underdog(self):
        assert american_profit(100, 150) == pytest.approx(150.0)

    def test_even(self):
        assert american_profit(100, 100) == pytest.approx(100.0)


class TestBetTracker:
    """Tests for ledger operations."""

    def test_add_bet(self, tracker, start_time):
        bet = tracker.add_bet(bet_data())

        assert bet.status == BetStatus.PENDING
        assert bet.placed_at == start_time
        assert bet.id
        assert tracker.get_bet(bet.id) is bet
        assert tracker.get_pending_bets() == [bet]

    def test_persists_to_disk(self, tmp_path, clock):
        tracker = BetTracker(data_dir=str(tmp_path), clock=clock)
        bet = tracker.add_bet(bet_data())

        saved = json.loads((tmp_path / "bets.json").read_text())
        assert saved[0]["id"] == bet.id
        assert saved[0]["bet_type"] == "over"

        reloaded = BetTracker(data_dir=str(tmp_path), clock=clock)
        assert reloaded.get_bet(bet.id).line == 220.5

    def test_read_only_does_not_write(self, tmp_path, clock):
        tracker = BetTracker(data_dir=str(tmp_path / "ro"), read_only=True, clock=clock)
        tracker.add_bet(bet_data())

        assert not (tmp_path / "ro").exists()
        assert len(tracker.get_bets()) == 1

    def test_bets_by_game(self, tracker):
        tracker.add_bet(bet_data(game_id="g1"))
        tracker.add_bet(bet_data(game_id="g2"))

        assert [b.game_id for b in tracker.get_bets_by_game_id("g2")] == ["g2"]

    def test_update_bet(self, tracker):
        bet = tracker.add_bet(bet_data())

        updated = tracker.update_bet(bet.id, BetUpdate(notes="hedged", amount=50))

        assert updated.notes == "hedged"
        assert updated.amount == 50
        assert updated.line == 220.5
        assert updated.settled_at is None

    def test_update_to_settled_status_stamps_time(self, tracker, clock, start_time):
        bet = tracker.add_bet(bet_data())
        clock.advance(hours=3)

        updated = tracker.update_bet(bet.id, BetUpdate(status=BetStatus.WON, profit=90.91, payout=190.91))

        assert updated.status == BetStatus.WON
        assert updated.settled_at == clock()

    def test_update_unknown(self, tracker):
        assert tracker.update_bet("missing", BetUpdate(notes="x")) is None


class TestSettlement:
    """Tests for grading bets against final scores."""

    def test_over_wins(self, tracker):
        bet = tracker.add_bet(bet_data(line=220.5, odds=-110, amount=110))

        settled = tracker.settle_bet(bet.id, 112, 110)

        assert settled.status == BetStatus.WON
        assert settled.profit == pytest.approx(100.0)
        assert settled.payout == pytest.approx(210.0)
        assert settled.final_score == FinalScore(home=112, away=110)

    def test_over_loses(self, tracker):
        bet = tracker.add_bet(bet_data(line=220.5, amount=100))

        settled = tracker.settle_bet(bet.id, 100, 100)

        assert settled.status == BetStatus.LOST
        assert settled.payout == 0
        assert settled.profit == -100

    def test_under_wins(self, tracker):
        bet = tracker.add_bet(bet_data(bet_type=BetType.UNDER, line=220.5, odds=120, amount=50))

        settled = tracker.settle_bet(bet.id, 100, 100)

        assert settled.status == BetStatus.WON
        assert settled.profit == pytest.approx(60.0)

    def test_push(self, tracker):
        bet = tracker.add_bet(bet_data(line=220, amount=100))

        settled = tracker.settle_bet(bet.id, 110, 110)

        assert settled.status == BetStatus.PUSH
        assert settled.payout == 100
        assert settled.profit == 0

    def test_settle_unknown(self, tracker):
        assert tracker.settle_bet("missing", 100, 100) is None

    def test_auto_settle(self, tracker):
        first = tracker.add_bet(bet_data(game_id="g1"))
        second = tracker.add_bet(bet_data(game_id="g2"))

        settled = tracker.auto_settle_bets({"g1": FinalScore(home=120, away=110)})

        assert settled == 1
        assert tracker.get_bet(first.id).status == BetStatus.WON
        assert tracker.get_bet(second.id).status == BetStatus.PENDING


class TestStats:
    def test_empty(self, tracker):
        stats = tracker.calculate_stats()

        assert stats["total_bets"] == 0
        assert stats["win_percentage"] == 0
        assert stats["roi"] == 0
        assert stats["average_bet_size"] == 0

    def test_two_wins_one_loss(self, tracker):
        # Three $100 bets at -110: two winners, one loser
        for home, away in ((120, 110), (115, 110), (100, 100)):
            bet = tracker.add_bet(bet_data(line=220.5, odds=-110, amount=100))
            tracker.settle_bet(bet.id, home, away)

        stats = tracker.calculate_stats()

        assert stats["total_bets"] == 3
        assert stats["total_wagers"] == 300
        assert stats["win_count"] == 2
        assert stats["loss_count"] == 1
        assert stats["win_percentage"] == pytest.approx(66.67, abs=0.01)
        assert stats["net_profit"] == pytest.approx(81.82, abs=0.01)
        assert stats["roi"] == pytest.approx(27.27, abs=0.01)
        assert stats["biggest_win"] == pytest.approx(90.91, abs=0.01)
        assert stats["biggest_loss"] == -100
        assert stats["average_bet_size"] == 100

    def test_push_and_pending_excluded_from_win_rate(self, tracker):
        push = tracker.add_bet(bet_data(line=220))
        tracker.settle_bet(push.id, 110, 110)
        win = tracker.add_bet(bet_data(line=200.5))
        tracker.settle_bet(win.id, 110, 110)
        tracker.add_bet(bet_data())

        stats = tracker.calculate_stats()

        assert stats["push_count"] == 1
        assert stats["pending_count"] == 1
        assert stats["win_percentage"] == 100

    def test_three_ten_dollar_bets_at_even_money(self, tracker):
        for home, away in ((120, 110), (115, 110), (100, 100)):
            bet = tracker.add_bet(bet_data(line=220.5, odds=100, amount=10))
            tracker.settle_bet(bet.id, home, away)

        stats = tracker.calculate_stats()

        assert stats["net_profit"] == pytest.approx(10.0)
        assert stats["total_wagers"] == pytest.approx(30.0)
        # Wins over decided bets: 2 of 3
        assert stats["win_percentage"] == pytest.approx(200 / 3)
