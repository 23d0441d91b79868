from quickact.apps.cli.app import app

app(prog_name="quickact")
