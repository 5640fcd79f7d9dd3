from osm_submit import main

main()
