from webprovision.main import app

app(prog_name="webprovision")
