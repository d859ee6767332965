import httpx
import pytest

from scouting.history.store import HistoryStore
from scouting.models.enums import RefreshStatus
from scouting.pipeline.context import RunContext, RunOptions
from scouting.pipeline.history import append_team_history, snapshot_from_team
from scouting.pipeline.teams import refresh_teams
from scouting.pipeline.tournaments import refresh_tournaments
from scouting.storage.json_store import ContentError
from tests.conftest import (
    MHR_HTML,
    MHR_HTML_NO_RANKS,
    THURSDAY,
    WEDNESDAY,
    FakeRenderer,
    PageServer,
    load,
    write,
)

ROCKETS = "https://mhr.test/rockets"
BLUES = "https://mhr.test/blues"
STARS = "https://mhr.test/stars"
MHR_BASE = "https://myhockeyrankings.com/team_info.php"

FALL_CLASSIC = {
    "name": "Fall Classic",
    "slug": "fall-classic",
    "dates": "Oct 18–20, 2025",
    "opponents": [
        "chesterfield-a1",
        {
            "name": "Rockets 12U A1",
            "slug": "rockets-a1",
            "mhrUrl": ROCKETS,
            "notes": "Fast forwards",
        },
        {
            "name": "Blues (MO)",
            "mhrUrl": BLUES,
            "rating": 84.2,
            "record": "8-2-1",
            "updatedFromMHRAt": "2025-09-28T15:00:00.000Z",
        },
        {"name": "Stars", "mhrUrl": STARS},
    ],
}


def mhr_site() -> PageServer:
    return PageServer(
        {
            ROCKETS: httpx.Response(200, text=MHR_HTML),
            BLUES: httpx.Response(200, text=MHR_HTML),
            STARS: httpx.Response(500),
        }
    )


def statuses(summary):
    return {o.label: o.status for o in summary.outcomes}


class TestTournaments:
    async def test_refreshes_inline_opponents(self, app_settings, make_refresher):
        path = write(app_settings.tournaments_dir / "fall-classic.json", FALL_CLASSIC)
        server = mhr_site()
        sleeps = []

        summary = await refresh_tournaments(make_refresher(server, sleeps=sleeps))

        data = load(path)
        rockets, blues, stars = data["opponents"][1:]
        assert data["opponents"][0] == "chesterfield-a1"
        assert list(rockets) == [
            "name",
            "slug",
            "mhrUrl",
            "notes",
            "rating",
            "record",
            "mhrStateRank",
            "mhrNationalRank",
            "updatedFromMHRAt",
        ]
        assert rockets["rating"] == 86.07
        assert rockets["record"] == "10-4-2"
        assert rockets["mhrStateRank"] == 3
        assert rockets["mhrNationalRank"] == 45
        assert rockets["updatedFromMHRAt"] == "2025-10-01T15:00:00.000Z"
        assert blues == FALL_CLASSIC["opponents"][2]
        assert stars == FALL_CLASSIC["opponents"][3]

        assert statuses(summary) == {
            "fall-classic: Rockets 12U A1": RefreshStatus.UPDATED,
            "fall-classic: Blues (MO)": RefreshStatus.SKIPPED,
            "fall-classic: Stars": RefreshStatus.FAILED,
        }
        assert summary.files_modified == 2  # tournament file plus rockets-a1 history
        assert BLUES not in server.requested
        assert server.requested.count(STARS) == app_settings.request_max_attempts
        assert len(sleeps) == 2  # one pause per fetched opponent, failures included

        assert load(app_settings.history_dir / "rockets-a1.json") == [
            {"date": "2025-10-01", "rating": 86.07, "stateRank": 3, "nationalRank": 45}
        ]

    async def test_rerun_same_day_leaves_files_untouched(self, app_settings, make_refresher):
        path = write(app_settings.tournaments_dir / "fall-classic.json", FALL_CLASSIC)
        await refresh_tournaments(make_refresher(mhr_site()))
        before = path.read_bytes()
        history_before = (app_settings.history_dir / "rockets-a1.json").read_bytes()

        server = mhr_site()
        summary = await refresh_tournaments(make_refresher(server))

        assert path.read_bytes() == before
        assert (app_settings.history_dir / "rockets-a1.json").read_bytes() == history_before
        assert summary.files_modified == 0
        assert server.requested == [STARS, STARS]

    async def test_force_bumps_timestamp_without_value_change(
        self, app_settings, make_refresher
    ):
        path = write(app_settings.tournaments_dir / "fall-classic.json", FALL_CLASSIC)
        await refresh_tournaments(make_refresher(mhr_site()))

        summary = await refresh_tournaments(
            make_refresher(mhr_site(), RunOptions(force=True), now=THURSDAY)
        )

        rockets = load(path)["opponents"][1]
        assert rockets["updatedFromMHRAt"] == "2025-10-02T15:00:00.000Z"
        assert statuses(summary)["fall-classic: Rockets 12U A1"] == RefreshStatus.UNCHANGED
        # Thursday with identical values: no new history point
        assert len(load(app_settings.history_dir / "rockets-a1.json")) == 1

    async def test_past_tournaments_are_skipped(self, app_settings, make_refresher):
        past = dict(FALL_CLASSIC, dates="Sep 5–7, 2025")
        path = write(app_settings.tournaments_dir / "labor-day.json", past)
        server = mhr_site()

        summary = await refresh_tournaments(make_refresher(server))

        assert server.requested == []
        assert statuses(summary) == {"labor-day": RefreshStatus.SKIPPED}
        assert load(path) == past

        summary = await refresh_tournaments(
            make_refresher(mhr_site(), RunOptions(include_past=True))
        )
        assert load(path)["opponents"][1]["rating"] == 86.07

    async def test_bad_files_do_not_stop_the_run(self, app_settings, make_refresher):
        (app_settings.tournaments_dir).mkdir(parents=True)
        (app_settings.tournaments_dir / "a-broken.json").write_text("{not json")
        write(app_settings.tournaments_dir / "b-nameless.json", {"opponents": []})
        write(app_settings.tournaments_dir / "fall-classic.json", FALL_CLASSIC)

        summary = await refresh_tournaments(make_refresher(mhr_site()))

        labels = statuses(summary)
        assert labels["a-broken"] == RefreshStatus.SKIPPED
        assert labels["b-nameless"] == RefreshStatus.SKIPPED
        assert labels["fall-classic: Rockets 12U A1"] == RefreshStatus.UPDATED

    async def test_name_filter(self, app_settings, make_refresher):
        write(app_settings.tournaments_dir / "fall-classic.json", FALL_CLASSIC)
        server = mhr_site()

        summary = await refresh_tournaments(
            make_refresher(server, RunOptions(tournament="winter"))
        )

        assert summary.outcomes == []
        assert server.requested == []

    async def test_dry_run_writes_nothing(self, app_settings, make_refresher):
        path = write(app_settings.tournaments_dir / "fall-classic.json", FALL_CLASSIC)
        before = path.read_bytes()

        summary = await refresh_tournaments(
            make_refresher(mhr_site(), RunOptions(dry_run=True, dump_html=True, debug=True))
        )

        assert summary.dry_run
        assert summary.files_modified == 2  # would write the tournament and one history file
        assert path.read_bytes() == before
        assert not app_settings.history_dir.exists()
        assert not app_settings.debug_dir.exists()
        assert not app_settings.dump_dir.exists()

    async def test_missing_directory_is_an_error(self, make_refresher):
        with pytest.raises(ContentError):
            await refresh_tournaments(make_refresher(mhr_site()))


class TestTeams:
    async def test_updates_values_in_place(self, app_settings, make_refresher):
        path = write(
            app_settings.teams_dir / "rockets-a1.json",
            {
                "name": "Rockets 12U A1",
                "slug": "rockets-a1",
                "mhrUrl": ROCKETS,
                "rating": 80.0,
                "coach": "Pat",
                "record": "1-1-1",
            },
        )

        summary = await refresh_teams(make_refresher(mhr_site()))

        team = load(path)
        assert list(team) == [
            "name",
            "slug",
            "mhrUrl",
            "rating",
            "coach",
            "record",
            "mhrStateRank",
            "mhrNationalRank",
            "lastUpdated",
        ]
        assert team["rating"] == 86.07
        assert team["lastUpdated"] == "2025-10-01"
        assert summary.files_modified == 2  # team file plus its history
        assert summary.outcomes[0].history_changed
        assert (app_settings.history_dir / "rockets-a1.json").exists()

    async def test_unchanged_team_is_not_rewritten(self, app_settings, make_refresher):
        path = write(
            app_settings.teams_dir / "rockets-a1.json",
            {
                "name": "Rockets 12U A1",
                "slug": "rockets-a1",
                "mhrUrl": ROCKETS,
                "rating": 86.07,
                "record": "10-4-2",
                "mhrStateRank": 3,
                "mhrNationalRank": 45,
                "lastUpdated": "2025-09-01",
            },
        )
        before = path.read_bytes()

        summary = await refresh_teams(make_refresher(mhr_site(), now=THURSDAY))

        assert path.read_bytes() == before
        assert summary.outcomes[0].status == RefreshStatus.UNCHANGED
        # only the first history point is new
        assert summary.outcomes[0].history_changed
        assert summary.files_modified == 1

    async def test_unranked_placeholder_is_overwritten(self, app_settings, make_refresher):
        path = write(
            app_settings.teams_dir / "rockets-a1.json",
            {"name": "Rockets", "slug": "rockets-a1", "mhrUrl": ROCKETS, "mhrStateRank": "NR"},
        )

        summary = await refresh_teams(make_refresher(mhr_site()))

        assert summary.outcomes[0].status == RefreshStatus.UPDATED
        assert load(path)["mhrStateRank"] == 3

    async def test_history_writes_count_as_modified_files(self, app_settings, make_refresher):
        write(
            app_settings.teams_dir / "rockets-a1.json",
            {"name": "Rockets", "slug": "rockets-a1", "mhrUrl": ROCKETS},
        )

        first = await refresh_teams(make_refresher(mhr_site()))
        again = await refresh_teams(make_refresher(mhr_site()))

        assert first.files_modified == 2
        assert again.files_modified == 0

    async def test_url_built_from_team_id(self, app_settings, make_refresher):
        url = f"{MHR_BASE}?y=2025&t=1234"
        write(
            app_settings.teams_dir / "blues.json",
            {"name": "Blues", "slug": "blues", "mhrTeamId": 1234, "mhrYear": 2025},
        )
        server = PageServer({url: httpx.Response(200, text=MHR_HTML)})

        await refresh_teams(make_refresher(server))

        assert server.requested == [url]

    async def test_slug_filter_and_missing_urls(self, app_settings, make_refresher):
        write(app_settings.teams_dir / "rockets-a1.json", {"name": "Rockets", "slug": "rockets-a1", "mhrUrl": ROCKETS})
        write(app_settings.teams_dir / "blues.json", {"name": "Blues", "slug": "blues"})
        server = mhr_site()

        summary = await refresh_teams(make_refresher(server, RunOptions(slug="blues")))

        assert server.requested == []
        assert summary.outcomes[0].label == "blues"
        assert summary.outcomes[0].reason == "no mhrUrl or id"

    async def test_page_without_values_is_skipped(self, app_settings, make_refresher):
        path = write(
            app_settings.teams_dir / "rockets-a1.json",
            {"name": "Rockets", "slug": "rockets-a1", "mhrUrl": ROCKETS},
        )
        before = path.read_bytes()
        server = PageServer({ROCKETS: httpx.Response(200, text="<p>Team not found</p>")})

        summary = await refresh_teams(make_refresher(server))

        assert summary.outcomes[0].status == RefreshStatus.SKIPPED
        assert summary.outcomes[0].reason == "no MHR values found"
        assert path.read_bytes() == before

    async def test_rendered_ranks_are_used(self, app_settings, make_refresher):
        path = write(
            app_settings.teams_dir / "rockets-a1.json",
            {"name": "Rockets 12U A1 (TX)", "slug": "rockets-a1", "mhrUrl": ROCKETS},
        )
        server = PageServer({ROCKETS: httpx.Response(200, text=MHR_HTML_NO_RANKS)})
        renderer = FakeRenderer({ROCKETS: "MHR Rating: 81.50 Record: 5-3-1 2nd TX 12U 10th USA 12U"})

        await refresh_teams(make_refresher(server, renderer=renderer))

        team = load(path)
        assert team["rating"] == 81.5
        assert team["mhrStateRank"] == 2
        assert team["mhrNationalRank"] == 10

    async def test_debug_and_html_dumps(self, app_settings, make_refresher):
        write(
            app_settings.teams_dir / "rockets-a1.json",
            {"name": "Rockets", "slug": "rockets-a1", "mhrUrl": ROCKETS},
        )

        await refresh_teams(make_refresher(mhr_site(), RunOptions(debug=True, dump_html=True)))

        text = (app_settings.debug_dir / "rockets-a1-mhr-text.txt").read_text()
        assert "45th USA 12U" in text
        html = (app_settings.dump_dir / "rockets-a1-20251001T150000.html").read_text()
        assert html == MHR_HTML


class TestHistoryCommand:
    def test_records_history_and_rank_snapshots(self, app_settings):
        write(
            app_settings.teams_dir / "rockets-a1.json",
            {
                "name": "Rockets",
                "slug": "rockets-a1",
                "mhrTeamId": 1234,
                "rating": 86.07,
                "mhrStateRank": "3rd",
                "mhr": {"ranks": {"national": "#45"}},
            },
        )
        write(app_settings.teams_dir / "unslugged.json", {"name": "Nobody"})
        store = HistoryStore(app_settings.history_dir, app_settings.snapshot_dir)
        context = RunContext.create(app_settings, now=WEDNESDAY)

        summary = append_team_history(store, RunOptions(), context, app_settings.teams_dir)

        assert load(app_settings.history_dir / "rockets-a1.json") == [
            {"date": "2025-10-01", "rating": 86.07, "stateRank": 3, "nationalRank": 45}
        ]
        expected = {"stateRank": 3, "nationalRank": 45}
        assert load(app_settings.snapshot_dir / "rockets-a1.json") == expected
        assert load(app_settings.snapshot_dir / "1234.json") == expected
        assert summary.files_modified == 3
        assert statuses(summary) == {
            "rockets-a1": RefreshStatus.UPDATED,
            "unslugged": RefreshStatus.SKIPPED,
        }

        again = append_team_history(store, RunOptions(), context, app_settings.teams_dir)
        assert again.files_modified == 0

    def test_snapshot_from_team_ignores_non_numeric_rating(self):
        snapshot = snapshot_from_team({"rating": "n/a", "stateRank": 7})
        assert snapshot.rating is None
        assert snapshot.state_rank == 7
        assert snapshot.national_rank is None
