from archive_repack.cli import main

main()
