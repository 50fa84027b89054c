from fc_ingestion.bootstrap import cli

if __name__ == "__main__":
    cli()
