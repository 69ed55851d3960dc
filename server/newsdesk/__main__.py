from newsdesk.main import main

main()
