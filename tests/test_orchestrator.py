from range_ai.config import ROLE_ENEMY_MOVEMENT, ROLE_ENEMY_PATROL, ROLE_PLAYER_MOVEMENT
from range_ai.play_ai import run_evaluation
from range_ai.train_ai import CyclicTrainingOrchestrator

ROLES = (ROLE_PLAYER_MOVEMENT, ROLE_ENEMY_MOVEMENT, ROLE_ENEMY_PATROL)


def make_orchestrator(model_dir, **kwargs):
    options = dict(
        roles=ROLES,
        episodes_per_cycle=2,
        model_dir=model_dir,
        seed=5,
        parallel=False,
        load_models=False,
        episode_length=15,
    )
    options.update(kwargs)
    return CyclicTrainingOrchestrator(**options)


def test_range_groups_follow_shared_ranges(tmp_path):
    orchestrator = make_orchestrator(tmp_path)

    assert orchestrator.range_groups() == [[ROLE_PLAYER_MOVEMENT], [ROLE_ENEMY_MOVEMENT, ROLE_ENEMY_PATROL]]


def test_one_cycle_trains_and_saves(tmp_path):
    orchestrator = make_orchestrator(tmp_path)

    cycles = orchestrator.run(max_cycles=1)

    assert cycles == 1
    for role in ROLES:
        assert orchestrator.model_path(role).exists()
        assert orchestrator.agents[role].episodes_completed == 2


def test_parallel_cycle(tmp_path):
    orchestrator = make_orchestrator(tmp_path, parallel=True)

    results = orchestrator.run_cycle()

    assert set(results) == set(ROLES)
    assert all(len(episodes) == 2 for episodes in results.values())


def test_stop_is_honored_and_models_still_saved(tmp_path):
    orchestrator = make_orchestrator(tmp_path)
    orchestrator.stop()

    assert orchestrator.run(max_cycles=3) == 0
    assert orchestrator.run_role(ROLE_PLAYER_MOVEMENT, 5) == []
    assert orchestrator.model_path(ROLE_PLAYER_MOVEMENT).exists()


def test_saved_models_reload(tmp_path):
    make_orchestrator(tmp_path).run(max_cycles=1)

    reloaded = make_orchestrator(tmp_path, load_models=True)
    loaded = reloaded.load_models()

    assert all(loaded.values())
    assert reloaded.agents[ROLE_PLAYER_MOVEMENT].trainer.training_steps > 0


def test_evaluation_uses_saved_models(tmp_path):
    make_orchestrator(tmp_path).run(max_cycles=1)

    averages = run_evaluation(roles=(ROLE_PLAYER_MOVEMENT,), episodes=1, model_dir=tmp_path, seed=2)

    assert set(averages) == {ROLE_PLAYER_MOVEMENT}
