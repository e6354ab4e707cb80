from logid_cli.query import main


if __name__ == "__main__":
    raise SystemExit(main())
