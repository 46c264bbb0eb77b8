from opskit.cli import app

app(prog_name="opskit")
