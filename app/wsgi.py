from app.customs import create_app

app = create_app()
