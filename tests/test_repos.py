import pytest

from distropkg.data import RepoUpdateState
from distropkg.errors import RepoUpdateError
from distropkg.providers.api import PkgManager
from distropkg.repos import RepoUpdateCoordinator


class FakeClock:
    """
    Monotonic clock that only moves when slept on.
    """

    def __init__(self) -> None:
        self.now = 1000.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestRepoUpdateCoordinator:
    @pytest.fixture
    def pkg_manager(self, mocker):
        """
        Package manager requiring explicit refreshes, which succeed.
        """
        mock = mocker.create_autospec(PkgManager, instance=True)
        mock.refresh_required = True
        mock.reposync.return_value = True
        return mock

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def state(self):
        return RepoUpdateState()

    @pytest.fixture
    def coordinator(self, connection, pkg_manager, state, clock):
        return RepoUpdateCoordinator(
            connection,
            pkg_manager,
            state,
            timeout=300,
            interval=30,
            clock=clock,
            sleep=clock.sleep,
        )

    def test_ensure_fresh(self, coordinator, pkg_manager, state, connection):
        coordinator.ensure_fresh()

        pkg_manager.reposync.assert_called_once_with(connection)
        assert state.updated is True

    def test_ensure_fresh_idempotent(self, coordinator, pkg_manager):
        """
        Repositories are refreshed at most once unless forced.
        """
        coordinator.ensure_fresh()
        coordinator.ensure_fresh()
        coordinator.ensure_fresh(force=False)

        assert pkg_manager.reposync.call_count == 1

    def test_ensure_fresh_forced(self, coordinator, pkg_manager, state):
        coordinator.ensure_fresh()
        coordinator.ensure_fresh(force=True)

        assert pkg_manager.reposync.call_count == 2
        assert state.updated is True

    @pytest.mark.parametrize("force", [False, True], ids=["normal", "forced"])
    def test_ensure_fresh_offline(self, coordinator, pkg_manager, state, force):
        """
        Offline mode preempts everything, including forced refreshes.
        """
        state.offline = True

        coordinator.ensure_fresh(force=force)

        pkg_manager.reposync.assert_not_called()
        assert state.updated is False

    def test_ensure_fresh_skip_update(self, coordinator, pkg_manager, state):
        state.skip_update = True

        coordinator.ensure_fresh()
        pkg_manager.reposync.assert_not_called()

        coordinator.ensure_fresh(force=True)
        pkg_manager.reposync.assert_called_once()

    def test_ensure_fresh_force_retry_flag(self, coordinator, pkg_manager, state):
        """
        A pending retry flag forces the next refresh only.
        """
        state.updated = True
        state.force_retry = True

        coordinator.ensure_fresh()
        coordinator.ensure_fresh()

        pkg_manager.reposync.assert_called_once()
        assert state.force_retry is False

    def test_ensure_fresh_not_required(self, coordinator, pkg_manager, state):
        """
        Package managers refreshing on their own are never asked to.
        """
        pkg_manager.refresh_required = False

        coordinator.ensure_fresh()

        pkg_manager.reposync.assert_not_called()
        assert state.updated is True

    def test_ensure_fresh_retries(self, coordinator, pkg_manager, clock, state):
        """
        Failed refreshes are retried at a fixed interval.
        """
        pkg_manager.reposync.side_effect = [False, False, True]

        coordinator.ensure_fresh()

        assert pkg_manager.reposync.call_count == 3
        assert clock.sleeps == [30, 30]
        assert state.updated is True

    def test_ensure_fresh_timeout(self, coordinator, pkg_manager, clock, state):
        """
        A mirror that stays broken past the timeout is fatal.
        """
        pkg_manager.reposync.return_value = False

        with pytest.raises(RepoUpdateError):
            coordinator.ensure_fresh()

        assert pkg_manager.reposync.call_count == 10
        assert sum(clock.sleeps) == 300
        assert state.updated is False

    def test_ensure_fresh_timeout_partial_interval(
        self, connection, pkg_manager, state, clock
    ):
        """
        The last sleep is cut short so the timeout is never exceeded.
        """
        pkg_manager.reposync.return_value = False
        coordinator = RepoUpdateCoordinator(
            connection,
            pkg_manager,
            state,
            timeout=45,
            interval=30,
            clock=clock,
            sleep=clock.sleep,
        )

        with pytest.raises(RepoUpdateError):
            coordinator.ensure_fresh()

        assert clock.sleeps == [30, 15]
        assert pkg_manager.reposync.call_count == 2
