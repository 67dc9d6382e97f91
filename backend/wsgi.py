from factures import create_app

app = create_app()
