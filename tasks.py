from invoke import task


@task
def lint(c):
    c.run("ruff check src tests scripts")


@task
def format_check(c):
    c.run("ruff format --check src tests scripts")


@task
def test(c, k=None):
    c.run(f"pytest -k '{k}'" if k else "pytest")


@task
def init_db(c, config=None):
    c.run(f"elo-ranker init-db --config {config}" if config else "elo-ranker init-db")


@task
def ci(c):
    lint(c)
    format_check(c)
    test(c)
