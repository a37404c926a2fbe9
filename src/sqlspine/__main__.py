from sqlspine.cli.app import app

app()
