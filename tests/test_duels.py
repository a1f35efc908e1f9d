from unittest.mock import MagicMock

import discord
import pytest

from conftest import FixedRandom, make_interaction, make_message, make_user
from duels import (
    INVITE, NOTICE_DELETE_AFTER, REJECT_AUTOMATED_CHALLENGER, REJECT_BOTS,
    REJECT_OTHER_BOTS, REJECT_SELF, START_VS_BOT,
    ChallengeView, ConnectFourDuel, Duel, RockPaperScissorsDuel, TicTacToeDuel,
    check_challenge,
)
from game_logic import FIRST, SECOND
from stats import totals_of


class TestCheckChallenge:
    def test_order_of_checks(self, alice, bob, bot_user):
        other_bot = make_user(77, bot=True)
        assert check_challenge(alice, alice, bot_user, True) == REJECT_SELF
        assert check_challenge(bot_user, bot_user, bot_user, True) == REJECT_SELF
        assert check_challenge(other_bot, alice, bot_user, True) == REJECT_AUTOMATED_CHALLENGER
        assert check_challenge(alice, bot_user, bot_user, False) == REJECT_BOTS
        assert check_challenge(alice, other_bot, bot_user, False) == REJECT_BOTS
        assert check_challenge(alice, bot_user, bot_user, True) == START_VS_BOT
        assert check_challenge(alice, other_bot, bot_user, True) == REJECT_OTHER_BOTS
        assert check_challenge(alice, bob, bot_user, True) == INVITE


def test_duel_is_abstract(bot, channel, stats, alice, bob):
    with pytest.raises(TypeError):
        Duel(bot, channel, stats, alice, bob)


class TestChallengeProtocol:
    @pytest.mark.asyncio
    async def test_self_challenge_only_sends_a_notice(self, bot, channel, stats, alice):
        duel = TicTacToeDuel(bot, channel, stats, alice, alice)
        assert await duel.challenge() is None

        channel.send.assert_awaited_once()
        args, kwargs = channel.send.await_args
        assert "can't challenge yourself" in args[0]
        assert kwargs == {"delete_after": NOTICE_DELETE_AFTER}

    @pytest.mark.asyncio
    async def test_disallowed_bot_opponent(self, bot, channel, stats, alice, bot_user):
        duel = TicTacToeDuel(bot, channel, stats, alice, bot_user)
        duel.allow_bot_opponent = False
        assert await duel.challenge() is None
        assert "can't challenge bots" in channel.send.await_args.args[0]

    @pytest.mark.asyncio
    async def test_other_bot_is_rejected(self, bot, channel, stats, alice):
        duel = RockPaperScissorsDuel(bot, channel, stats, alice, make_user(77, bot=True))
        assert await duel.challenge() is None
        assert "other bots" in channel.send.await_args.args[0]

    @pytest.mark.asyncio
    async def test_invitation_has_buttons(self, bot, channel, stats, alice, bob):
        duel = TicTacToeDuel(bot, channel, stats, alice, bob)
        message = await duel.challenge(timeout=30)

        assert message is channel.last_message
        view = channel.send.await_args.kwargs["view"]
        assert isinstance(view, ChallengeView)
        assert view.timeout == 30
        assert view.message is message
        assert {child.label for child in view.children} == {"Accept", "Decline"}

    @pytest.mark.asyncio
    async def test_accept_starts_the_game_on_the_same_message(self, bot, channel, stats, alice, bob):
        duel = TicTacToeDuel(bot, channel, stats, alice, bob)
        await duel.challenge()
        view = channel.send.await_args.kwargs["view"]

        interaction = make_interaction(bob)
        await view.handle_accept(interaction)

        interaction.response.defer.assert_awaited_once()
        assert view.resolved
        assert view.is_finished()
        assert duel.message is view.message
        edit = view.message.edit.await_args.kwargs
        assert edit["view"] is duel.view
        assert "Tic-Tac-Toe" in edit["content"]

    @pytest.mark.asyncio
    async def test_challenger_cannot_accept(self, bot, channel, stats, alice, bob):
        duel = TicTacToeDuel(bot, channel, stats, alice, bob)
        await duel.challenge()
        view = channel.send.await_args.kwargs["view"]

        await view.handle_accept(make_interaction(alice))

        assert not view.resolved
        view.message.edit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_opponent_declines(self, bot, channel, stats, alice, bob):
        duel = ConnectFourDuel(bot, channel, stats, alice, bob)
        await duel.challenge()
        view = channel.send.await_args.kwargs["view"]

        await view.handle_decline(make_interaction(bob))

        kwargs = view.message.edit.await_args.kwargs
        assert "declined" in kwargs["content"]
        assert kwargs["view"] is None
        view.message.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_challenger_withdraws(self, bot, channel, stats, alice, bob):
        duel = ConnectFourDuel(bot, channel, stats, alice, bob)
        await duel.challenge()
        view = channel.send.await_args.kwargs["view"]

        await view.handle_decline(make_interaction(alice))

        view.message.delete.assert_awaited_once()
        view.message.edit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bystanders_are_ignored(self, bot, channel, stats, alice, bob):
        duel = ConnectFourDuel(bot, channel, stats, alice, bob)
        await duel.challenge()
        view = channel.send.await_args.kwargs["view"]
        carol = make_user(3)

        await view.handle_accept(make_interaction(carol))
        await view.handle_decline(make_interaction(carol))

        assert not view.resolved
        view.message.edit.assert_not_awaited()
        view.message.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_timeout_edits_once(self, bot, channel, stats, alice, bob):
        duel = RockPaperScissorsDuel(bot, channel, stats, alice, bob)
        await duel.challenge()
        view = channel.send.await_args.kwargs["view"]

        await view.on_timeout()
        await view.handle_accept(make_interaction(bob))

        view.message.edit.assert_awaited_once()
        assert "in time" in view.message.edit.await_args.kwargs["content"]
        bob.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_first_response_wins(self, bot, channel, stats, alice, bob):
        duel = RockPaperScissorsDuel(bot, channel, stats, alice, bob)
        await duel.challenge()
        view = channel.send.await_args.kwargs["view"]

        await view.handle_decline(make_interaction(bob))
        await view.handle_accept(make_interaction(bob))
        await view.on_timeout()

        view.message.edit.assert_awaited_once()
        bob.send.assert_not_awaited()


class TestRockPaperScissors:
    @pytest.mark.asyncio
    async def test_human_duel_solicits_both_players_by_dm(self, bot, channel, stats, alice, bob):
        duel = RockPaperScissorsDuel(bot, channel, stats, alice, bob)
        await duel.start()

        alice.send.assert_awaited_once()
        bob.send.assert_awaited_once()
        assert {view.role for view in duel.views} == {FIRST, SECOND}
        assert "check your DMs" in channel.send.await_args.args[0]

    @pytest.mark.asyncio
    async def test_rock_beats_scissors_in_any_arrival_order(self, bot, channel, stats, alice, bob):
        duel = RockPaperScissorsDuel(bot, channel, stats, alice, bob)
        await duel.start()
        alice_view, bob_view = sorted(duel.views, key=lambda v: v.role)

        await bob_view.pick(make_interaction(bob), "scissors")
        assert not duel.finished
        await alice_view.pick(make_interaction(alice), "rock")

        assert duel.finished
        game = stats.data["42"]["rps"]
        assert game["1"]["totals"]["win"]["rock"] == 1
        assert game["2"]["totals"]["loss"]["scissors"] == 1
        assert game["1"]["opponents"]["2"]["win"]["rock"] == 1
        assert game["2"]["opponents"]["1"]["loss"]["scissors"] == 1
        result = duel.message.edit.await_args.kwargs["content"]
        assert "<@1> wins!" in result

    @pytest.mark.asyncio
    async def test_draw_is_credited_to_both(self, bot, channel, stats, alice, bob):
        duel = RockPaperScissorsDuel(bot, channel, stats, alice, bob)
        await duel.start()
        alice_view, bob_view = sorted(duel.views, key=lambda v: v.role)

        await alice_view.pick(make_interaction(alice), "paper")
        await bob_view.pick(make_interaction(bob), "paper")

        game = stats.data["42"]["rps"]
        assert game["1"]["totals"]["draw"]["paper"] == 1
        assert game["2"]["totals"]["draw"]["paper"] == 1
        assert "draw" in duel.message.edit.await_args.kwargs["content"]

    @pytest.mark.asyncio
    async def test_only_the_owner_can_pick_and_only_once(self, bot, channel, stats, alice, bob):
        duel = RockPaperScissorsDuel(bot, channel, stats, alice, bob)
        await duel.start()
        alice_view, _ = sorted(duel.views, key=lambda v: v.role)

        await alice_view.pick(make_interaction(bob), "rock")
        assert duel.round.challenger_choice is None

        await alice_view.pick(make_interaction(alice), "rock")
        await alice_view.pick(make_interaction(alice), "paper")
        assert duel.round.challenger_choice == 0
        assert not duel.finished

    @pytest.mark.asyncio
    async def test_vs_bot_picks_at_decision_time(self, bot, channel, stats, alice, bot_user):
        rng = FixedRandom(picks=["scissors"])
        duel = RockPaperScissorsDuel(bot, channel, stats, alice, bot_user, rng=rng)
        message = await duel.challenge()

        assert message is channel.last_message
        assert duel.round.opponent_choice is None
        view = channel.send.await_args.kwargs["view"]
        assert view.player is alice

        await view.pick(make_interaction(alice), "paper")

        game = stats.data["42"]["rps"]
        assert set(game) == {"1"}
        assert game["1"]["totals"]["loss"]["paper"] == 1
        assert game["1"]["opponents"]["99"]["loss"]["paper"] == 1
        assert "<@99> wins!" in duel.message.edit.await_args.kwargs["content"]

    @pytest.mark.asyncio
    async def test_timeout_abandons_without_stats(self, bot, channel, stats, alice, bob):
        duel = RockPaperScissorsDuel(bot, channel, stats, alice, bob)
        await duel.start()
        alice_view, bob_view = sorted(duel.views, key=lambda v: v.role)

        await alice_view.pick(make_interaction(alice), "rock")
        await bob_view.on_timeout()

        assert duel.finished
        assert stats.data == {}
        assert "expired" in duel.message.edit.await_args.kwargs["content"]
        bob_view.message.edit.assert_awaited_once()

        await bob_view.pick(make_interaction(bob), "paper")
        assert stats.data == {}

    @pytest.mark.asyncio
    async def test_undeliverable_dm_cancels_the_game(self, bot, channel, stats, alice, bob):
        bob.send.side_effect = discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Cannot send messages to this user")
        duel = RockPaperScissorsDuel(bot, channel, stats, alice, bob)
        await duel.start()

        assert duel.finished
        assert [view.player for view in duel.views] == [alice]
        assert "Couldn't DM <@2>" in duel.message.edit.await_args.kwargs["content"]
        alice_view = duel.views[0]
        assert "Couldn't DM <@2>" in alice_view.message.edit.await_args.kwargs["content"]

        await alice_view.pick(make_interaction(alice), "rock")
        assert duel.round.challenger_choice is None
        assert stats.data == {}

    @pytest.mark.asyncio
    async def test_no_dm_delivered_at_all(self, bot, channel, stats, alice, bob):
        for user in (alice, bob):
            user.send.side_effect = discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Cannot send messages to this user")
        duel = RockPaperScissorsDuel(bot, channel, stats, alice, bob)
        await duel.start()

        assert duel.finished
        assert duel.views == []
        assert "Couldn't DM <@1> and <@2>" in duel.message.edit.await_args.kwargs["content"]

    @pytest.mark.asyncio
    async def test_only_the_owner_passes_the_view_check(self, bot, channel, stats, alice, bot_user):
        duel = RockPaperScissorsDuel(bot, channel, stats, alice, bot_user, rng=FixedRandom(picks=["rock"]))
        await duel.challenge()
        view = channel.send.await_args.kwargs["view"]

        bystander = make_interaction(make_user(3))
        assert not await view.interaction_check(bystander)
        bystander.response.defer.assert_awaited_once()
        assert await view.interaction_check(make_interaction(alice))

        await view.pick(make_interaction(alice), "paper")
        assert not await view.interaction_check(make_interaction(alice))


def ttt_duel(bot, channel, stats, challenger, opponent, **kwargs):
    # value 0.9 keeps the challenger as X
    kwargs.setdefault("rng", FixedRandom(value=0.9))
    return TicTacToeDuel(bot, channel, stats, challenger, opponent, **kwargs)


class TestTicTacToe:
    def test_roles_are_assigned_randomly(self, bot, channel, stats, alice, bob):
        kept = TicTacToeDuel(bot, channel, stats, alice, bob, rng=FixedRandom(value=0.9))
        swapped = TicTacToeDuel(bot, channel, stats, alice, bob, rng=FixedRandom(value=0.1))
        assert kept.roles == {FIRST: alice, SECOND: bob}
        assert swapped.roles == {FIRST: bob, SECOND: alice}

    @pytest.mark.asyncio
    async def test_x_wins_top_row(self, bot, channel, stats, alice, bob):
        duel = ttt_duel(bot, channel, stats, alice, bob)
        await duel.start()

        for user, cell in [(alice, 0), (bob, 3), (alice, 1), (bob, 4), (alice, 2)]:
            interaction = make_interaction(user)
            await duel.handle_move(interaction, cell)
            interaction.response.edit_message.assert_awaited_once()

        assert duel.finished
        assert duel.view.is_finished()
        assert all(child.disabled for child in duel.view.children)
        game = stats.data["42"]["ttt"]
        assert game["1"]["totals"]["win"]["x"] == 1
        assert game["2"]["totals"]["loss"]["o"] == 1
        assert game["2"]["opponents"]["1"]["loss"]["o"] == 1
        assert "wins! (<@1>)" in interaction.response.edit_message.await_args.kwargs["content"]

    @pytest.mark.asyncio
    async def test_illegal_moves_are_silently_ignored(self, bot, channel, stats, alice, bob):
        duel = ttt_duel(bot, channel, stats, alice, bob)
        await duel.start()
        await duel.handle_move(make_interaction(alice), 4)

        for user, cell in [(alice, 0), (bob, 4), (make_user(3), 0)]:
            interaction = make_interaction(user)
            await duel.handle_move(interaction, cell)
            interaction.response.defer.assert_awaited_once()
            interaction.response.edit_message.assert_not_awaited()

        assert duel.game.turn == SECOND
        assert duel.game.board == [0, 0, 0, 0, 1, 0, 0, 0, 0]

    @pytest.mark.asyncio
    async def test_draw(self, bot, channel, stats, alice, bob):
        duel = ttt_duel(bot, channel, stats, alice, bob)
        await duel.start()
        # X: 0 2 3 7 8, O: 1 4 5 6
        moves = [(alice, 0), (bob, 1), (alice, 2), (bob, 4), (alice, 3),
                 (bob, 5), (alice, 7), (bob, 6), (alice, 8)]
        for user, cell in moves:
            await duel.handle_move(make_interaction(user), cell)

        assert duel.finished
        game = stats.data["42"]["ttt"]
        assert game["1"]["totals"]["draw"]["x"] == 1
        assert game["2"]["totals"]["draw"]["o"] == 1

    @pytest.mark.asyncio
    async def test_bot_opens_when_it_holds_x(self, bot, channel, stats, alice, bot_user):
        rng = FixedRandom(value=0.1, picks=[4])
        duel = TicTacToeDuel(bot, channel, stats, alice, bot_user, rng=rng)
        await duel.challenge()

        assert duel.roles[FIRST] is bot_user
        assert duel.game.board[4] == FIRST
        assert duel.game.turn == SECOND
        assert channel.send.await_args.kwargs["view"] is duel.view

    @pytest.mark.asyncio
    async def test_bot_replies_after_each_human_move(self, bot, channel, stats, alice, bot_user):
        rng = FixedRandom(value=0.9, picks=[3, 4])
        duel = TicTacToeDuel(bot, channel, stats, alice, bot_user, rng=rng)
        await duel.start()

        await duel.handle_move(make_interaction(alice), 0)
        await duel.handle_move(make_interaction(alice), 1)
        assert duel.game.board[:5] == [1, 1, 0, 2, 2]
        await duel.handle_move(make_interaction(alice), 2)

        assert duel.finished
        game = stats.data["42"]["ttt"]
        assert set(game) == {"1"}
        assert game["1"]["totals"]["win"]["x"] == 1
        assert game["1"]["opponents"]["99"]["win"]["x"] == 1

    @pytest.mark.asyncio
    async def test_timeout_abandons_without_stats(self, bot, channel, stats, alice, bob):
        duel = ttt_duel(bot, channel, stats, alice, bob)
        await duel.start()
        await duel.handle_move(make_interaction(alice), 0)

        await duel.view.on_timeout()

        assert duel.finished
        assert stats.data == {}
        assert "expired" in duel.message.edit.await_args.kwargs["content"]
        interaction = make_interaction(bob)
        await duel.handle_move(interaction, 1)
        interaction.response.defer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_only_the_player_to_move_passes_the_view_check(self, bot, channel, stats, alice, bob):
        duel = ttt_duel(bot, channel, stats, alice, bob)
        await duel.start()
        view = duel.view

        bystander = make_interaction(make_user(3))
        assert not await view.interaction_check(bystander)
        bystander.response.defer.assert_awaited_once()
        assert not await view.interaction_check(make_interaction(bob))
        assert await view.interaction_check(make_interaction(alice))

        await duel.handle_move(make_interaction(alice), 4)
        assert await view.interaction_check(make_interaction(bob))
        assert not await view.interaction_check(make_interaction(alice))

        await view.on_timeout()
        assert not await view.interaction_check(make_interaction(bob))


class TestConnectFour:
    @pytest.mark.asyncio
    async def test_accepted_game_reuses_invitation(self, bot, channel, stats, alice, bob):
        duel = ConnectFourDuel(bot, channel, stats, alice, bob, rng=FixedRandom(value=0.9))
        invitation = make_message()
        await duel.start(invitation)

        assert duel.message is invitation
        content = invitation.edit.await_args.kwargs["content"]
        assert "⚫" * 7 in content
        assert len(duel.view.children) == 7

    @pytest.mark.asyncio
    async def test_vertical_win(self, bot, channel, stats, alice, bob):
        duel = ConnectFourDuel(bot, channel, stats, alice, bob, rng=FixedRandom(value=0.9))
        await duel.start()
        for user, column in [(alice, 0), (bob, 1), (alice, 0), (bob, 1), (alice, 0), (bob, 1), (alice, 0)]:
            await duel.handle_move(make_interaction(user), column)

        assert duel.finished
        game = stats.data["42"]["c4"]
        assert game["1"]["totals"]["win"]["red"] == 1
        assert game["2"]["totals"]["loss"]["yellow"] == 1

    @pytest.mark.asyncio
    async def test_full_column_button_is_disabled_and_ignored(self, bot, channel, stats, alice, bob):
        duel = ConnectFourDuel(bot, channel, stats, alice, bob, rng=FixedRandom(value=0.9))
        await duel.start()
        for i in range(6):
            await duel.handle_move(make_interaction(alice if i % 2 == 0 else bob), 3)

        column_button = next(child for child in duel.view.children if child.move == 3)
        assert column_button.disabled
        interaction = make_interaction(alice)
        await duel.handle_move(interaction, 3)
        interaction.response.defer.assert_awaited_once()
        assert duel.game.turn == FIRST


class TestLeaderboards:
    @pytest.mark.asyncio
    async def test_leaderboard_ranks_players(self, channel, stats):
        options = RockPaperScissorsDuel.options
        stats.record_result("42", "rps", options, "1", "rock", "2", "scissors")
        stats.record_result("42", "rps", options, "1", "paper", "3", "rock")
        stats.record_draw("42", "rps", options, "2", "rock", "3", "rock")

        await RockPaperScissorsDuel.send_leaderboard(channel, stats, "42")

        embed = channel.send.await_args.kwargs["embed"]
        lines = embed.description.splitlines()
        assert lines[0].startswith("🥇 <@1>")
        assert "(2W / 0D / 0L)" in lines[0]
        assert lines[1].startswith("🥈 <@2>")
        assert lines[2].startswith("🥈 <@3>")

    @pytest.mark.asyncio
    async def test_empty_leaderboard(self, channel, stats):
        await ConnectFourDuel.send_leaderboard(channel, stats, "42")
        assert channel.send.await_args.kwargs["embed"].description == "No games played yet."

    @pytest.mark.asyncio
    async def test_personal_stats(self, channel, stats, alice):
        options = TicTacToeDuel.options
        stats.record_result("42", "ttt", options, "1", "x", "2", "o")
        stats.record_draw("42", "ttt", options, "1", "o", "2", "x")

        await TicTacToeDuel.send_leaderboard(channel, stats, "42", alice)

        embed = channel.send.await_args.kwargs["embed"]
        fields = {field.name: field.value for field in embed.fields}
        assert fields["Wins"] == "1"
        assert fields["Draws"] == "1"
        assert fields["Losses"] == "0"
        assert fields["Win rate"] == "75.0%"
        assert fields["X"] == "1W / 0D / 0L"
        assert fields["Head-to-head"] == "<@2>: 1W / 1D / 0L"

    @pytest.mark.asyncio
    async def test_personal_stats_for_new_player(self, channel, stats, bob):
        await TicTacToeDuel.send_leaderboard(channel, stats, "42", bob)

        fields = {field.name: field.value for field in channel.send.await_args.kwargs["embed"].fields}
        assert fields["Win rate"] == "—"
        assert totals_of(stats.data["42"]["ttt"]["2"]["totals"]) == (0, 0, 0)
