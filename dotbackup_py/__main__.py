from dotbackup_py.cli import app

app(prog_name="dotbackup")
