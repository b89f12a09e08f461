from pbp_engine.demo import main


def test_demo_prints_both_boxscores(capsys):
    main(["--seed", "3", "--home-pace", "8", "--injuries"])
    out = capsys.readouterr().out
    assert "Final Score: A_Spread" in out
    assert "[A_Spread] Player Boxscore" in out
    assert "[B_Bully] Player Boxscore" in out
    assert "TOTAL" in out
